DEPOSIT_COINS = ("BTC", "ETH", "USDT", "BNB", "ADA")

# USD is the settlement unit membership payouts are credited in
SETTLEMENT_COIN = "USD"
BALANCE_COINS = DEPOSIT_COINS + (SETTLEMENT_COIN,)


class TransactionType:
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    TRANSFER = "TRANSFER"
    PAYOUT = "PAYOUT"
    MEMBERSHIP_PAYOUT = "MEMBERSHIP_PAYOUT"

    ALL = (DEPOSIT, WITHDRAW, TRANSFER, PAYOUT, MEMBERSHIP_PAYOUT)


class TransactionStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    FAILED = "FAILED"


class TransferDirection:
    SENT = "SENT"
    RECEIVED = "RECEIVED"


class MembershipStatus:
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
