"""
Models for the options of the top-level operations.
"""
from typing import List, Optional
from pydantic import BaseModel
from enum import Enum


class RecreatePolicy(str, Enum):
    """
    When existing containers of a service are replaced.
    """
    NEVER = "never"
    DIVERGED = "diverged"  # only when the config hash changed
    FORCE = "force"


class UpOptions(BaseModel):
    """
    Options for converging and starting a project.
    An empty `services` list targets every service.
    """
    services: List[str] = []
    recreate: RecreatePolicy = RecreatePolicy.DIVERGED
    inherit: bool = True
    timeout: Optional[float] = None
    no_start: bool = False


class RestartOptions(BaseModel):
    services: List[str] = []
    timeout: Optional[float] = None
