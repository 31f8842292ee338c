from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from boutique.utils.validators import validate_password_strength


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str = Field(min_length=1, max_length=12)
    new_password: str = Field(alias="newPassword", min_length=8)

    @field_validator("new_password")
    def password_strength(cls, v: str) -> str:
        return validate_password_strength(v)


class SetupAdminRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    setup_key: str = Field(alias="setupKey", min_length=1)
