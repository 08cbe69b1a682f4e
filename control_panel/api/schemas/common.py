from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


class CommandOutputResponse(BaseModel):
    message: str
    output: str = ""
