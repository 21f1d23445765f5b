# /models.py
from pydantic import BaseModel, ConfigDict, Field, model_validator, validate_email
from typing import Optional, Dict, Any, Literal

import config

class CounterEvent(BaseModel):
    """
    Request model for /api-server/counter.

    Fields:
    - hostname: site hostname the event happened on (required)
    - url: page path or URL (required)
    - referrer, title, language, screen: page metadata (optional)
    - userAgent: overrides the request's User-Agent header (optional)
    - name: custom event name, empty for page views (optional)
    - data: custom event properties (optional)
    """
    model_config = ConfigDict(extra="allow")

    hostname: str
    url: str
    referrer: Optional[str] = None
    title: Optional[str] = None
    language: Optional[str] = None
    screen: Optional[str] = None
    userAgent: Optional[str] = None
    name: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

class SubscribeRequest(BaseModel):
    email: str
    name: Optional[str] = None

class ContactRequest(BaseModel):
    """
    Request model for /api-server/contact.

    Fields:
    - message: 1-5000 characters (required)
    - responseType: none | email | signal_username | signal_phone (required)
    - email: required and well-formed when responseType is "email"
    - signalUsername / signalPhone: required (min 5 chars) for the matching responseType
    """
    message: str = Field(min_length=1, max_length=config.CONTACT_MAX_MESSAGE_CHARS)
    responseType: Literal["none", "email", "signal_username", "signal_phone"]
    email: Optional[str] = None
    signalUsername: Optional[str] = None
    signalPhone: Optional[str] = None

    @model_validator(mode="after")
    def contact_details_match_response_type(self):
        if self.responseType == "email":
            if not self.email:
                raise ValueError("email is required when responseType is 'email'")
            validate_email(self.email)
        elif self.responseType == "signal_username":
            if not self.signalUsername or len(self.signalUsername) < 5:
                raise ValueError("signalUsername must be at least 5 characters")
        elif self.responseType == "signal_phone":
            if not self.signalPhone or len(self.signalPhone) < 5:
                raise ValueError("signalPhone must be at least 5 characters")
        return self
