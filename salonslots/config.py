"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import BusinessHours, ServiceDescriptor, SlotTime


class BusinessHoursConfig(BaseModel):
    """Opening rules and curated slot lists."""
    opening_hour: int = 9
    closing_hour: int = 19
    extended_closing_hour: int = 22
    extended_weekdays: List[int] = Field(default_factory=lambda: [1, 3])  # Tuesday, Thursday
    evening_start_hour: int = 18
    standard_service_hours: int = 3
    long_service_hours: int = 5
    standard_slots: List[str] = Field(default_factory=lambda: ["09:00", "12:00", "15:00"])
    long_service_slots: List[str] = Field(default_factory=lambda: ["09:00", "14:00"])
    evening_slot: str = "18:00"

    @field_validator("opening_hour", "closing_hour", "extended_closing_hour", "evening_start_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("standard_service_hours", "long_service_hours")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service durations are positive."""
        if value <= 0:
            raise ValueError("Service durations must be greater than zero")
        return value

    @field_validator("extended_weekdays")
    @classmethod
    def validate_weekdays(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"extended_weekdays must be between 0 and 6, got {invalid_days}")
        return list(dict.fromkeys(value))

    @field_validator("standard_slots", "long_service_slots")
    @classmethod
    def validate_slots(cls, value: List[str]) -> List[str]:
        """Ensure slot lists hold HH:MM times."""
        invalid = [slot for slot in value if not SlotTime.is_valid(slot)]
        if invalid:
            raise ValueError(f"Invalid time format: {', '.join(invalid)}")
        return value

    @field_validator("evening_slot")
    @classmethod
    def validate_evening_slot(cls, value: str) -> str:
        if not SlotTime.is_valid(value):
            raise ValueError(f"Invalid time format: {value}")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "BusinessHoursConfig":
        """Ensure the salon opens before it closes."""
        if self.closing_hour <= self.opening_hour:
            raise ValueError("closing_hour must be later than opening_hour")
        if self.extended_closing_hour < self.closing_hour:
            raise ValueError("extended_closing_hour must not be earlier than closing_hour")
        return self

    def to_business_hours(self) -> BusinessHours:
        """Convert into the domain value object."""
        return BusinessHours(
            opening_hour=self.opening_hour,
            closing_hour=self.closing_hour,
            extended_closing_hour=self.extended_closing_hour,
            extended_weekdays=tuple(self.extended_weekdays),
            evening_start_hour=self.evening_start_hour,
            standard_service_hours=self.standard_service_hours,
            long_service_hours=self.long_service_hours,
            standard_slots=tuple(SlotTime.parse(slot) for slot in self.standard_slots),
            long_service_slots=tuple(SlotTime.parse(slot) for slot in self.long_service_slots),
            evening_slot=SlotTime.parse(self.evening_slot),
        )


class StoreConfig(BaseModel):
    """Where bookings and blocked dates are kept."""
    backend: Literal["json", "kv"] = "json"
    data_dir: Path = Path("data")
    key_prefix: str = "heyu_test"
    kv_rest_url: str = ""
    kv_rest_token: str = ""
    env_prefix: str = "heyu_test"

    def resolve_kv_credentials(self) -> Tuple[str, str]:
        """
        Resolve the KV REST URL and token.

        Explicit config wins, then KV_REST_API_URL/KV_REST_API_TOKEN, then the
        ``<env_prefix>_KV_REST_API_URL``/``_TOKEN`` pair.

        Raises:
            ValueError: If no complete set of credentials is found
        """
        if self.kv_rest_url and self.kv_rest_token:
            return self.kv_rest_url, self.kv_rest_token

        url = os.environ.get("KV_REST_API_URL")
        token = os.environ.get("KV_REST_API_TOKEN")
        if url and token:
            return url, token

        url = os.environ.get(f"{self.env_prefix}_KV_REST_API_URL")
        token = os.environ.get(f"{self.env_prefix}_KV_REST_API_TOKEN")
        if url and token:
            return url, token

        raise ValueError(
            "No KV store configuration found. Set kv_rest_url/kv_rest_token in the config, "
            f"KV_REST_API_URL/KV_REST_API_TOKEN or {self.env_prefix}_KV_REST_API_URL/"
            f"{self.env_prefix}_KV_REST_API_TOKEN."
        )


class ServiceEntry(BaseModel):
    """Service catalogue entry."""
    name: str
    duration: str = ""  # Free text, e.g. "3小时" or "5 hrs"

    def to_descriptor(self) -> ServiceDescriptor:
        return ServiceDescriptor.from_label(self.duration, name=self.name)


class AppConfig(BaseModel):
    """Application configuration."""
    business_hours: BusinessHoursConfig = Field(default_factory=BusinessHoursConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    store_failure_policy: Literal["optimistic", "suppress"] = "optimistic"
    services: List[ServiceEntry] = Field(default_factory=list)

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceEntry]) -> List[ServiceEntry]:
        """Ensure service names are unique."""
        seen_names: set[str] = set()
        for service in value:
            name_key = service.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate service name detected: {service.name}")
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_service(self, name: str) -> Optional[ServiceEntry]:
        """Find a catalogue service by name (case-insensitive)."""
        for service in self.services:
            if service.name.lower() == name.lower():
                return service
        return None

    def resolve_service(self, identifier: str) -> ServiceDescriptor:
        """
        Resolve a service name or a bare duration label to a descriptor.

        Unknown names are treated as duration labels, so "5小时" works without
        a catalogue entry and anything unparseable falls back to three hours.
        """
        service = self.find_service(identifier)
        if service:
            return service.to_descriptor()
        return ServiceDescriptor.from_label(identifier)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of salonslots/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
