from pydantic import BaseModel, EmailStr, Field


class RegisterSchema(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=6, max_length=72)


class LoginSchema(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str = Field(min_length=1)

    @property
    def identifier(self) -> str | None:
        return self.username or self.email


class UpdateProfileSchema(BaseModel):
    bio: str | None = Field(None, max_length=500)
    username: str | None = Field(None, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr | None = None
