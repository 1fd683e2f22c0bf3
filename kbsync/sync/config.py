"""
Sync job configuration and per-client credentials.

A configuration file lists the jobs of one deployment. Every job belongs to a
client (tenant); the client id selects the credentials used against the
remote document store and partitions the metadata store.
"""

import os
import yaml
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass
from pydantic import BaseModel, Field, model_validator

from ..config import (
    EDGE_CLOUD_CONTROLLER_HOST, DEFAULT_CLIENT_ID,
    DEFAULT_SYNC_INTERVAL_SECONDS, DEFAULT_RATE_LIMIT_SECONDS,
)
from .error_tracker import ConfigurationError


def env_suffix(client_id: str) -> str:
    """Environment variable suffix for a client id ('my-client' -> 'MY_CLIENT')."""
    return client_id.upper().replace('-', '_')


@dataclass
class ClientCredentials:
    """Credentials scoping remote calls to one client"""
    client_id: str
    api_key: str
    chatbot_id: str
    project_id: str
    host: str = EDGE_CLOUD_CONTROLLER_HOST

    @classmethod
    def from_environment(cls, client_id: str, host: Optional[str] = None) -> 'ClientCredentials':
        """
        Create client credentials from environment variables.

        Client-specific variables (TEC_API_KEY_<CLIENT>, CHATBOT_ID_<CLIENT>,
        PROJECT_ID_<CLIENT>) take precedence over the un-suffixed ones.

        Args:
            client_id: The client identifier
            host: Controller host, defaults to EDGE_CLOUD_CONTROLLER_HOST

        Returns:
            ClientCredentials instance

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        suffix = env_suffix(client_id)
        values = {}
        missing_vars = []
        for field_name, var_name in (('api_key', 'TEC_API_KEY'), ('chatbot_id', 'CHATBOT_ID'), ('project_id', 'PROJECT_ID')):
            value = os.getenv(f'{var_name}_{suffix}') or os.getenv(var_name)
            if not value:
                missing_vars.append(f'{var_name}_{suffix} or {var_name}')
            values[field_name] = value

        if missing_vars:
            raise ConfigurationError(
                f"Missing required environment variables for client {client_id}: {', '.join(missing_vars)}",
                source_id=client_id,
                recovery_suggestion="Set the variables in the environment or in the .env file"
            )

        return cls(
            client_id=client_id,
            host=(host or EDGE_CLOUD_CONTROLLER_HOST).rstrip('/'),
            **values
        )


class JobType(str, Enum):
    """Supported sync jobs."""
    SCHEDULE = "schedule"  # League schedule and results report
    ACTIVITIES = "activities"  # Park activities report
    DIRECTORY = "directory"  # Local files uploaded as-is


class SyncJob(BaseModel):
    """A single artifact-producing job."""
    id: str = Field(..., description="Unique job identifier")
    type: JobType = Field(..., description="Job type")
    client_id: str = Field(default=DEFAULT_CLIENT_ID, description="Client the artifacts belong to")
    enabled: bool = Field(default=True, description="Whether this job is enabled")
    save_to_file: bool = Field(default=False, description="Also write generated reports to the data directory")

    league_id: Optional[str] = Field(None, description="League identifier (schedule jobs)")
    league_name: Optional[str] = Field(None, description="Human-readable league name used in report descriptions")
    park_code: Optional[str] = Field(None, description="Park code (activities jobs)")
    path: Optional[str] = Field(None, description="Directory path (directory jobs)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Extra metadata attached to uploaded documents")

    @model_validator(mode='after')
    def validate_job_type_config(self):
        """Validate that the job type has its required parameter."""
        if self.type == JobType.SCHEDULE and not self.league_id:
            raise ValueError('Schedule job requires league_id')
        elif self.type == JobType.ACTIVITIES and not self.park_code:
            raise ValueError('Activities job requires park_code')
        elif self.type == JobType.DIRECTORY and not self.path:
            raise ValueError('Directory job requires path')
        return self


class SyncConfig(BaseModel):
    """Main configuration for the sync service."""
    version: str = Field(default="1.0.0", description="Configuration version")
    name: str = Field(..., description="Configuration name")
    description: Optional[str] = Field(None, description="Configuration description")

    jobs: List[SyncJob] = Field(default_factory=list, description="List of sync jobs")

    # Storage configuration
    cache_directory: str = Field(default="./cache", description="Metadata store directory")
    data_directory: str = Field(default="./data", description="Directory for locally saved reports")

    # Scheduling configuration
    interval_seconds: int = Field(default=DEFAULT_SYNC_INTERVAL_SECONDS, description="Seconds between sync cycles")
    rate_limit_seconds: float = Field(default=DEFAULT_RATE_LIMIT_SECONDS, description="Minimum seconds between artifact syncs")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(None, description="Log file path")

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SyncConfig':
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        return cls(**data)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode='json')

        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)

    def get_job_by_id(self, job_id: str) -> Optional[SyncJob]:
        """Get job configuration by ID."""
        for job in self.jobs:
            if job.id == job_id:
                return job
        return None

    def get_enabled_jobs(self) -> List[SyncJob]:
        """Get all enabled jobs."""
        return [job for job in self.jobs if job.enabled]
