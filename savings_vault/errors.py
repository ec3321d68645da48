"""Errors raised by the savings vault."""


class VaultError(Exception):
    """Base class for vault operation failures."""


class ZeroAmount(VaultError):
    """Stake, withdraw or funding amount is not positive."""

    def __init__(self, amount: int) -> None:
        super().__init__(f"Amount must be > 0 (got {amount})")
        self.amount = amount


class BelowMinDeposit(VaultError):
    """Resulting principal would be below the configured minimum."""

    def __init__(self, account: str, new_principal: int, min_deposit: int) -> None:
        super().__init__(f"Deposit below minimum for {account}: principal {new_principal} < {min_deposit}")
        self.account = account
        self.new_principal = new_principal
        self.min_deposit = min_deposit


class AboveMaxDeposit(VaultError):
    """Resulting principal would exceed the configured maximum."""

    def __init__(self, account: str, new_principal: int, max_deposit: int) -> None:
        super().__init__(f"Deposit above maximum for {account}: principal {new_principal} > {max_deposit}")
        self.account = account
        self.new_principal = new_principal
        self.max_deposit = max_deposit


class InsufficientBalance(VaultError):
    """Withdrawal exceeds the account's principal."""

    def __init__(self, account: str, requested: int, principal: int) -> None:
        super().__init__(f"Insufficient balance for {account}: requested {requested}, principal {principal}")
        self.account = account
        self.requested = requested
        self.principal = principal


class InsufficientVaultFunds(VaultError):
    """The vault's own holdings cannot cover a payout of principal plus interest."""

    def __init__(self, payout: int, available: int) -> None:
        super().__init__(f"Insufficient vault funds: payout {payout}, available {available}")
        self.payout = payout
        self.available = available


class TransferFailed(VaultError):
    """Moving the base asset in or out of custody failed."""

    def __init__(self, account: str, amount: int, reason: str) -> None:
        super().__init__(f"Transfer of {amount} for {account} failed: {reason}")
        self.account = account
        self.amount = amount
        self.reason = reason


class OracleUnavailable(VaultError):
    """The price feed could not supply a fresh value."""


class Unauthorized(VaultError):
    """Caller lacks the capability for the requested operation."""

    def __init__(self, account: str, action: str) -> None:
        super().__init__(f"{account} is not allowed to {action}")
        self.account = account
        self.action = action
