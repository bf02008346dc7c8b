from __future__ import annotations


def format_rupees(amount: int) -> str:
    """Format using Indian digit grouping, e.g. ``Rs. 2,00,000``."""
    digits = str(abs(int(amount)))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join([*groups, tail])
    sign = "-" if int(amount) < 0 else ""
    return f"Rs. {sign}{digits}"
