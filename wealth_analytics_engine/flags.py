"""Machine-readable interpretive flags attached to engine results.

Every flag is ``{"flag": str, "severity": str, "details": dict}``; severities
are ``error``, ``warning``, ``info`` and ``success``. Flags never carry prose,
so presentation layers can localize or phrase them freely.
"""

from __future__ import annotations

from typing import Any, Dict, List


def _flag(name: str, severity: str, **details: Any) -> Dict[str, Any]:
    return {"flag": name, "severity": severity, "details": details}


def generate_performance_flags(snapshot: dict) -> list[dict]:
    """Generate severity-tagged flags from a performance snapshot."""
    flags = []

    excluded = snapshot.get("excluded_holdings") or []
    if excluded:
        flags.append(_flag("incomplete_history", "warning", holdings=list(excluded), count=len(excluded)))

    mwr_status = snapshot.get("mwr_status", "converged")
    if mwr_status != "converged":
        flags.append(_flag("mwr_unavailable", "warning", status=mwr_status, reason=snapshot.get("mwr_reason")))

    observations = snapshot.get("return_observations", 0)
    if observations < 2:
        flags.append(_flag("insufficient_history", "info", observations=observations))

    market_return = snapshot.get("market_return_percent")
    twr = snapshot.get("twr_percent")
    if market_return is not None and twr is not None:
        if twr < market_return:
            flags.append(_flag("underperforming_market", "info", twr_percent=twr, market_return_percent=market_return))
        else:
            flags.append(_flag("outperforming_market", "success", twr_percent=twr, market_return_percent=market_return))

    return _sort_flags(flags)


def generate_risk_flags(snapshot: dict) -> list[dict]:
    flags = []

    if snapshot.get("beta_defaulted"):
        flags.append(_flag("beta_defaulted", "info", observations=snapshot.get("beta_observations", 0)))

    beta = snapshot.get("beta")
    if beta is not None and not snapshot.get("beta_defaulted") and beta > 1.3:
        flags.append(_flag("high_beta", "warning", beta=beta))

    drawdown = snapshot.get("max_drawdown_percent", 0.0)
    if drawdown <= -20:
        flags.append(_flag("deep_drawdown", "warning", max_drawdown_percent=drawdown))

    high_corr = [
        (p["symbol1"], p["symbol2"])
        for p in snapshot.get("correlation_pairs", [])
        if p.get("correlation", 0) >= 0.9 and p["symbol1"] != p["symbol2"]
    ]
    if high_corr:
        flags.append(_flag("highly_correlated_holdings", "info", pairs=high_corr))

    excluded = snapshot.get("excluded_holdings") or []
    if excluded:
        flags.append(_flag("incomplete_history", "warning", holdings=list(excluded), count=len(excluded)))

    return _sort_flags(flags)


def generate_amortization_flags(snapshot: dict) -> list[dict]:
    flags = []

    status = snapshot.get("status", "complete")
    if status == "missing_terms":
        flags.append(_flag("missing_loan_terms", "info", missing=snapshot.get("missing", [])))
        return _sort_flags(flags)
    if status == "non_convergent":
        flags.append(_flag("negative_amortization", "error", stopped_at_payment=snapshot.get("payments_scheduled", 0)))

    balloon = snapshot.get("balloon_payment")
    if balloon:
        flags.append(_flag("balloon_payment", "warning", amount=balloon))

    if snapshot.get("negative_amortization_shortfall", 0) > 0:
        flags.append(
            _flag("balance_above_original", "warning", shortfall=snapshot["negative_amortization_shortfall"])
        )

    if snapshot.get("percent_paid_off", 0) >= 100 and status == "complete":
        flags.append(_flag("paid_off", "success"))

    return _sort_flags(flags)


def generate_payoff_comparison_flags(snapshot: dict) -> list[dict]:
    flags = []
    if snapshot.get("current_never_pays_off"):
        flags.append(_flag("minimum_never_pays_off", "error"))
    if snapshot.get("accelerated_never_pays_off"):
        flags.append(_flag("accelerated_never_pays_off", "error"))
    months_saved = snapshot.get("months_saved")
    if months_saved:
        flags.append(_flag("extra_payment_saves_time", "success", months_saved=months_saved))
    return _sort_flags(flags)


def generate_debt_payoff_flags(snapshot: dict) -> list[dict]:
    flags = []

    for strategy, fully_paid in (snapshot.get("fully_paid") or {}).items():
        if not fully_paid:
            flags.append(_flag("exceeds_simulation_horizon", "warning", strategy=strategy))

    minimum_interest = snapshot.get("minimum_only_interest")
    best_interest = snapshot.get("avalanche_interest")
    if minimum_interest is not None and best_interest is not None and minimum_interest > best_interest:
        flags.append(
            _flag("avalanche_saves_interest", "info", interest_saved=round(minimum_interest - best_interest, 2))
        )

    if snapshot.get("total_debt", 0) == 0:
        flags.append(_flag("no_outstanding_debt", "success"))

    return _sort_flags(flags)


def generate_tax_flags(snapshot: dict) -> list[dict]:
    flags = []

    opportunities = snapshot.get("harvest_count", 0)
    if opportunities:
        flags.append(
            _flag(
                "harvest_available",
                "info",
                count=opportunities,
                estimated_savings=snapshot.get("total_harvest_savings", 0.0),
            )
        )

    if snapshot.get("short_term_gains", 0) > 0:
        flags.append(_flag("short_term_gains", "info", amount=snapshot["short_term_gains"]))

    unknown = snapshot.get("unknown_purchase_dates") or []
    if unknown:
        flags.append(_flag("unknown_holding_period", "warning", holdings=list(unknown)))

    if not flags:
        flags.append(_flag("no_tax_actions", "success"))

    return _sort_flags(flags)


def _sort_flags(flags: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    order = {"error": 0, "warning": 1, "info": 2, "success": 3}
    return sorted(flags, key=lambda f: order.get(f.get("severity", "info"), 2))
