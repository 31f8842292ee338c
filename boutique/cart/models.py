from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class CartItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId", min_length=1)
    quantity: int = Field(ge=1)
    size: Optional[str] = None
    color: Optional[str] = None

class MergeCartRequest(BaseModel):
    items: List[CartItemRequest] = Field(default_factory=list)
