from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str
    tenant: str

    def __repr__(self) -> str:
        return (
            f"Credentials(username={self.username!r}, password='*****', "
            f"tenant={self.tenant!r})"
        )


class AccessToken(BaseModel):
    """Token returned by the identity server's password grant."""
    access_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
    issued_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    model_config = ConfigDict(extra='ignore')

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in or 0)

    def is_active(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at

    @property
    def is_bearer(self) -> bool:
        return (
            self.access_token is not None
            and self.token_type is not None
            and self.token_type.lower() == 'bearer'
            and bool(self.access_token.strip())
        )

    def __repr__(self) -> str:
        return (
            f"AccessToken(access_token='*****', token_type={self.token_type!r}, "
            f"expires_in={self.expires_in!r}, issued_at={self.issued_at!r})"
        )
