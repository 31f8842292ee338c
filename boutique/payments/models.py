from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

class CreateIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId", min_length=1)

class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId", min_length=1)
    intent_id: str = Field(alias="intentId", min_length=1)
    payment_id: str = Field(alias="paymentId", min_length=1)
    signature: str = Field(min_length=1)


class PaymentVerification:
    """Résultat métier d'une vérification: un échec de signature n'est pas une exception."""

    def __init__(
        self,
        success: bool,
        order: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        already_processed: bool = False,
    ):
        self.success = success
        self.order = order
        self.error = error
        self.already_processed = already_processed

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success, "data": self.order}
        if self.error:
            body["message"] = self.error
        elif self.already_processed:
            body["message"] = "Paiement déjà vérifié"
        else:
            body["message"] = "Paiement vérifié"
        return body
