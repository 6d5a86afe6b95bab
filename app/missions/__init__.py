"""
Missions app: client-posted units of work and student applications.

A mission moves open -> in_discussion -> in_progress -> completed, with
canceled reachable from any non-terminal status. Its payment_status is
driven by the escrow flow in the payments app.

Related apps:
    - authentication: User (client and student roles)
    - payments: Payment escrow, cancellation with void/refund
"""
