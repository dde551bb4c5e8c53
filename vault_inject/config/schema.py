"""Pydantic configuration models for vault-inject.

:class:`InjectConfig` describes the optional YAML file; :class:`InjectSettings`
is the fully merged result (CLI > environment > file > defaults) that the
rest of the program runs from.
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vault_inject.auth.methods import AuthCredentials, AuthMethod, parse_auth_method
from vault_inject.constants import DEFAULT_AUTH_TYPE, DEFAULT_LOG_LEVEL, DEFAULT_TIMEOUT

# ── File config ──────────────────────────────────────────────────────────


class AuthFileConfig(BaseModel):
    """``auth:`` section.  Passwords and tokens are never read from files."""

    model_config = ConfigDict(extra="forbid")

    type: Optional[str] = Field(default=None, description="ldap, userpass or token.")
    path: Optional[str] = Field(default=None, description="Auth backend mount path.")
    username: Optional[str] = None

    @field_validator("type")
    @classmethod
    def _check_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_auth_method(v)
        return v


class CacheFileConfig(BaseModel):
    """``cache:`` section."""

    model_config = ConfigDict(extra="forbid")

    read: bool = True
    write: bool = True
    dir: Optional[str] = Field(default=None, description="Override the cache directory.")


class InjectConfig(BaseModel):
    """Top-level YAML configuration."""

    model_config = ConfigDict(extra="forbid")

    vault_url: Optional[str] = None
    auth: AuthFileConfig = Field(default_factory=AuthFileConfig)
    secrets: List[str] = Field(default_factory=list)
    cache: CacheFileConfig = Field(default_factory=CacheFileConfig)
    timeout: Optional[float] = Field(default=None, gt=0)
    prompt: bool = True
    log_level: Optional[str] = None


# ── Merged settings ──────────────────────────────────────────────────────


class InjectSettings(BaseModel):
    """Everything one run needs, validated."""

    vault_url: str = Field(..., min_length=1)
    auth_method: AuthMethod = AuthMethod(DEFAULT_AUTH_TYPE)
    auth_path: str = ""
    username: str = ""
    password: str = Field(default="", repr=False)
    token: str = Field(default="", repr=False)
    secrets: List[str] = Field(..., min_length=1)
    command: Union[str, List[str]]
    cache_read: bool = True
    cache_write: bool = True
    cache_dir: Optional[str] = None
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    prompt: bool = True
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    @field_validator("vault_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"'{v}' must be an http:// or https:// URL")
        return v

    @field_validator("auth_method", mode="before")
    @classmethod
    def _parse_method(cls, v: object) -> object:
        if isinstance(v, str):
            return parse_auth_method(v)
        return v

    @field_validator("command")
    @classmethod
    def _check_command(cls, v: Union[str, List[str]]) -> Union[str, List[str]]:
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("command must not be empty")
        elif not v:
            raise ValueError("command must not be empty")
        return v

    def credentials(self) -> AuthCredentials:
        return AuthCredentials(
            method=self.auth_method,
            username=self.username,
            password=self.password,
            token=self.token,
            path=self.auth_path,
        )
