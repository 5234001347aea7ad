"""
MyShell: an interactive shell with remote sessions and encrypted file
transfer between two machines.
"""
