"""Error details domain model."""

from pydantic import BaseModel, ConfigDict


class ErrorDetails(BaseModel):
    """An error reported by a backend in its own vocabulary."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str | None = None
    status_code: int | None = None

    def describe(self) -> str:
        parts = [self.code]
        if self.message:
            parts.append(self.message)
        if self.status_code is not None:
            parts.append(f"(HTTP {self.status_code})")
        return " ".join(parts)
