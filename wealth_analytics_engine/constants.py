"""
Core Constants Module

Centralized definitions for ledger transaction types, payoff strategy keys and
the wash-sale replacement table used across the analytics engines.
"""

from enum import Enum


# Transaction Type Constants
# ==========================
# Canonical ledger entry types. Values match the upstream ledger's codes.

class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    INITIAL_BALANCE = "INITIAL_BALANCE"
    DIVIDEND = "DIVIDEND"
    SPLIT = "SPLIT"
    SPINOFF = "SPINOFF"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    FEE = "FEE"
    INTEREST = "INTEREST"


# Types that add shares when folding the ledger
QUANTITY_INCREASING_TYPES = {
    TransactionType.BUY,
    TransactionType.INITIAL_BALANCE,
    TransactionType.TRANSFER_IN,
}

# Types that remove shares (magnitudes may arrive negative-signed)
QUANTITY_DECREASING_TYPES = {
    TransactionType.SELL,
    TransactionType.WITHDRAWAL,
    TransactionType.TRANSFER_OUT,
}

# External cash flow direction from the portfolio's point of view
CASH_INFLOW_TYPES = {
    TransactionType.BUY,
    TransactionType.INITIAL_BALANCE,
    TransactionType.DEPOSIT,
}

CASH_OUTFLOW_TYPES = {
    TransactionType.SELL,
    TransactionType.DIVIDEND,
    TransactionType.WITHDRAWAL,
}

# Entries that establish a purchase date for holding-period purposes
PURCHASE_DATE_TYPES = {
    TransactionType.BUY,
    TransactionType.INITIAL_BALANCE,
}


# Payoff Strategy Keys
# ====================

STRATEGY_AVALANCHE = "avalanche"
STRATEGY_SNOWBALL = "snowball"
STRATEGY_MINIMUM_ONLY = "minimum_only"


# Holding Period Classification
# =============================

TAX_TYPE_SHORT_TERM = "short_term"
TAX_TYPE_LONG_TERM = "long_term"


# Wash-Sale Replacement Table
# ===========================
# Heuristic symbol -> correlated-but-distinct fund mapping. Not validated
# against the substantially-identical-security test or the 30-day window.

WASH_SALE_REPLACEMENTS = {
    "AAPL": "VGT",   # Tech stocks -> Vanguard Information Technology
    "MSFT": "VGT",
    "GOOGL": "VGT",
    "AMZN": "VGT",
    "META": "VGT",
    "TSLA": "DRIV",  # Autonomous/electric vehicles
    "JPM": "VFH",    # Banks -> Vanguard Financials
    "BAC": "VFH",
    "WFC": "VFH",
    "JNJ": "VHT",    # Healthcare -> Vanguard Health Care
    "PFE": "VHT",
    "UNH": "VHT",
    "XOM": "VDE",    # Energy -> Vanguard Energy
    "CVX": "VDE",
    "SPY": "VOO",    # S&P 500 -> Vanguard S&P 500
    "QQQ": "VGT",    # Nasdaq 100 -> Vanguard Information Technology
}

DEFAULT_REPLACEMENT = "VTI"            # Total Stock Market
SECONDARY_DEFAULT_REPLACEMENT = "ITOT"  # used when the holding already is VTI


def parse_transaction_type(raw, quantity=None):
    """Map an upstream type code to ``(TransactionType, reinvested)``.

    Accepts the aliases ``DIVIDEND_REINVEST`` and ``TRANSFER`` (direction taken
    from the sign of ``quantity``). Raises ``ValueError`` for unknown codes.
    """
    if isinstance(raw, TransactionType):
        return raw, False
    code = str(raw or "").strip().upper().replace(" ", "_")
    if code == "DIVIDEND_REINVEST":
        return TransactionType.DIVIDEND, True
    if code == "TRANSFER":
        if quantity is not None and quantity < 0:
            return TransactionType.TRANSFER_OUT, False
        return TransactionType.TRANSFER_IN, False
    try:
        return TransactionType(code), False
    except ValueError:
        raise ValueError(f"Unknown transaction type: {raw!r}") from None


def suggest_replacement(symbol: str) -> str:
    """Suggest a correlated fund that is never the holding's own symbol."""
    sym = str(symbol or "").upper()
    replacement = WASH_SALE_REPLACEMENTS.get(sym, DEFAULT_REPLACEMENT)
    if replacement == sym:
        return SECONDARY_DEFAULT_REPLACEMENT
    return replacement
