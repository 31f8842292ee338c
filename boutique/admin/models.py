from pydantic import BaseModel, ConfigDict, Field


class VerifyPromotionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_user_id: str = Field(alias="targetUserId", min_length=1)
    otp: str = Field(min_length=1, max_length=12)
