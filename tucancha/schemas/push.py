import uuid

from pydantic import BaseModel, Field, HttpUrl


class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1, max_length=255)
    auth: str = Field(min_length=1, max_length=255)


class PushSubscriptionRequest(BaseModel):
    endpoint: HttpUrl
    keys: PushKeys


class PushUnsubscribeRequest(BaseModel):
    endpoint: HttpUrl


class PushSubscriptionResponse(BaseModel):
    id: uuid.UUID
    endpoint: str

    model_config = {"from_attributes": True}


class VapidKeyResponse(BaseModel):
    public_key: str
