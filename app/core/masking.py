from typing import Optional

MASK = "****"


def mask_mobile_number(full_number: Optional[str]) -> str:
    """Render a phone number for display: four asterisks plus the last four characters."""
    if not full_number or len(full_number) < 4:
        return MASK
    return MASK + full_number[-4:]
