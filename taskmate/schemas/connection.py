from pydantic import BaseModel, Field
from typing import Optional

class CanvasStart(BaseModel):
    api_key: Optional[str] = Field(None, alias="apiKey")
    base_url: Optional[str] = Field(None, alias="baseUrl")

    class Config:
        populate_by_name = True

class UnlinkRequest(BaseModel):
    connected_account_id: Optional[str] = Field(None, alias="connectedAccountId")

    class Config:
        populate_by_name = True
