class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNSUPPORTED_COIN = "UNSUPPORTED_COIN"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_STATE = "INVALID_STATE"

    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    ADMIN_UNAUTHORIZED = "ADMIN_UNAUTHORIZED"

    USER_EXISTS = "USER_EXISTS"

    USER_NOT_FOUND = "USER_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    MEMBERSHIP_NOT_FOUND = "MEMBERSHIP_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorMessage:
    INVALID_CREDENTIALS = "Invalid credentials"
    UNAUTHORIZED = "Please login"
    ADMIN_UNAUTHORIZED = "Unauthorized"
    ADMIN_DISABLED = "Admin access is not configured"

    USER_EXISTS = "Email or username already exists"
    USER_NOT_FOUND = "User not found"
    RECIPIENT_NOT_FOUND = "Recipient not found"
    TRANSACTION_NOT_FOUND = "Transaction not found"
    MEMBERSHIP_NOT_FOUND = "Membership not found"

    INVALID_AMOUNT = "Amount must be greater than 0"
    INSUFFICIENT_BALANCE = "Insufficient balance"
    SELF_TRANSFER = "Cannot transfer to yourself"
    MEMBERSHIP_ALREADY_ACTIVE = "You already have an active membership"

    INTERNAL_ERROR = "Internal server error"
