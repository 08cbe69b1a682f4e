from typing import Union

from pydantic import BaseModel


class FirewallRuleRequest(BaseModel):
    # Validated by the gateway so that non-numeric ports get the same 400 as other callers
    port: Union[int, str]
    protocol: str = "tcp"
    action: str = "allow"
