"""
Payments app: the money side of the booking subsystem.

This app handles:
- The append-only double-entry ledger (payments.ledger)
- Security deposit holds (held, released, captured)
- Dispute freezes on booking money
- Owner payout aggregation

Related apps:
    - bookings: Drives ledger batches and deposit holds on transitions

Usage:
    from payments.ledger import ledger
    from payments.services import DepositHoldManager, PayoutAggregator

    balance = ledger.balance_of(owner_id, "usd")
    payout = PayoutAggregator().request_payout(owner_id, "usd")
"""
