"""Plan progress calculation."""


def calculate_progress(paid_installments: int, total_installments: int) -> int:
    """
    Percentage of installments paid, floored and capped at 100.

    Args:
        paid_installments: Installments counted as paid (refunds included)
        total_installments: Installments on the plan

    Returns:
        Integer progress in [0, 100]; 0 when total is not positive
    """
    if not total_installments or total_installments <= 0:
        return 0

    paid = max(paid_installments, 0)
    progress = (paid * 100) // total_installments

    return min(progress, 100)
