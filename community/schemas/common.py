from pydantic import BaseModel


class GenericMessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
    code: str
