from typing import Literal, Optional

from pydantic import BaseModel


StatusValue = Literal["ok", "error"]


class StatusResponse(BaseModel):
	status: StatusValue
	message: Optional[str] = None


class ErrorResponse(BaseModel):
	detail: str
	type: str
