"""Pydantic schemas for mailbox API responses"""

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned by every mailbox route"""
    error: str


class SuccessResponse(BaseModel):
    success: bool = True


class SendResponse(BaseModel):
    """Result of POST /send/email"""
    success: bool = True
    messageId: str
    emailId: str


class SendErrorResponse(BaseModel):
    success: bool = False
    error: str


class LoginRequest(BaseModel):
    """Login body; username and email are interchangeable"""
    username: Optional[str] = None
    email: Optional[str] = None
    apiKey: Optional[str] = None


class LoginUser(BaseModel):
    id: str
    email: str
    username: str


class LoginResponse(BaseModel):
    success: bool = True
    user: LoginUser
    message: str = "Login successful"


class UserSummary(BaseModel):
    username: str
    email: str


class StarStatusResponse(BaseModel):
    """Result of GET /starred/{id}"""
    success: bool = True
    starred: bool
