"""Service-specific settings for history-engine.

History-specific settings use the HISTORY_ENGINE_ prefix and cover:
- Modifier and version field naming
- Locale-qualified field storage suffix
- Fields excluded from tracking by default
- Logging
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for history-engine.

    Values act as defaults for document types that do not declare their own
    tracking options (see TypeSpec in adapters.type_registry).

    Environment variable prefix: HISTORY_ENGINE_
    """

    service_name: str = "history-engine"

    # -------------------------------------------------------------------------
    # Tracked document conventions
    # -------------------------------------------------------------------------

    modifier_field: str = Field(
        default="modifier",
        description="Field that receives the acting identity on undo/redo. "
        "Used for document types that declare no modifier field of their own.",
    )
    version_field: str = Field(
        default="version",
        description="Field holding the trackable's version counter. Never tracked.",
    )
    untracked_fields: list[str] = Field(
        default_factory=lambda: ["created_at", "updated_at"],
        description="Fields excluded from tracking unless a type lists them explicitly.",
    )

    # -------------------------------------------------------------------------
    # Localized fields
    # -------------------------------------------------------------------------

    localized_field_suffix: str = Field(
        default="_translations",
        description="Suffix appended to locale-qualified field names before write-back.",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(
        default="info",
        description="Minimum structlog level: debug, info, warning or error.",
    )
    log_json: bool = Field(
        default=True,
        description="Render log events as JSON. Disable for console-friendly output.",
    )

    model_config = SettingsConfigDict(env_prefix="HISTORY_ENGINE_")
