"""
HTTP routers for htlc-bridge, mounted by server.py.
"""
