from typing import Any

from pydantic import BaseModel


class StatusResponse(BaseModel):
    status: str = "OK"
    info: dict[str, Any]
