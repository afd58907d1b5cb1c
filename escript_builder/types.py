"""Shared Pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class AppResource(BaseModel):
    name: str
    vsn: str
    description: str = ""
    modules: list[str] = Field(default_factory=list)
    registered: list[str] = Field(default_factory=list)
    applications: list[str] = Field(default_factory=list)
    env: list[Any] = Field(default_factory=list)


class BuildReport(BaseModel):
    app: str
    vsn: str | None = None
    script: Path
    sha256: str
    files: int
    directories: int
    compiled: list[str] = Field(default_factory=list)
    build_time: str
    vcs_info: str
    otp_info: str | None = None
    finalized: list[Path] = Field(default_factory=list)
    extra_args: list[str] = Field(default_factory=list)
