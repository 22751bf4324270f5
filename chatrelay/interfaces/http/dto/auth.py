from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CredentialsDTO(BaseModel):
    """Shared shape of register and login bodies.

    Emptiness is left to the use cases so both endpoints report it as
    ``invalid_input``; the schema only guards types and storage bounds.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    username: str = Field(max_length=64)
    password: str = Field(max_length=128)


class RegisterRequestDTO(CredentialsDTO):
    pass


class LoginRequestDTO(CredentialsDTO):
    pass


class AuthResponseDTO(BaseModel):
    token: str
    username: str
