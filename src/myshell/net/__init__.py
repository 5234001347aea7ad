"""
Networking for remote MyShell sessions: framing, encryption, the transfer
protocol and session orchestration.
"""
