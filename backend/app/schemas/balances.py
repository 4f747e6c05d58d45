"""
Balance schemas for CoinPanel.

**Naming Convention**:
- BL prefix: Balance-related schemas
"""
from pydantic import BaseModel, Field


class BLBalanceItem(BaseModel):
    """
    Balance of one currency, computed from the coins an account owns.

    - value: sum of the coins' face values (smallest currency unit)
    - number_of_coins: how many coin records were summed
    """
    currency: str
    value: int = Field(ge=0)
    number_of_coins: int = Field(ge=0)
