from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from hotpatch.core.exception import ConfigurationError, DescriptorError

# ---------------------------------------------------------------------------
# Init options
# ---------------------------------------------------------------------------


class InitOptions(BaseModel):
    """Options for BundleLifecycleManager.init().

    `appVersion` is accepted as an alias so host code can pass the same mapping
    it ships to the mobile side.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    url: str
    app_version: str = Field(alias="appVersion")

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def parse(cls, options: "InitOptions | Mapping[str, Any] | None" = None, **kw: Any) -> "InitOptions":
        """Validate init options; raise ConfigurationError before any I/O."""
        if isinstance(options, InitOptions):
            return options
        raw: Dict[str, Any] = dict(options or {})
        raw.update(kw)
        if "app_version" in raw and "appVersion" not in raw:
            raw["appVersion"] = raw.pop("app_version")
        if not raw.get("url"):
            raise ConfigurationError("hotpatch.init(): url can not be null")
        if not raw.get("appVersion"):
            raise ConfigurationError("hotpatch.init(): appVersion can not be null")
        return cls.model_validate({"url": str(raw["url"]), "appVersion": str(raw["appVersion"])})


# ---------------------------------------------------------------------------
# Remote descriptor
# ---------------------------------------------------------------------------


class RemoteBundleDescriptor(BaseModel):
    """Latest bundle published for a platform.

    Version fields are plain strings on purpose: semver validity is checked by
    the activation policy, which fails closed on invalid values.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: Optional[str] = None
    is_update_required: bool = False
    apply_from_version: Optional[str] = None
    url: Optional[str] = None

    @field_validator("version", "apply_from_version", "url", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v)

    @field_validator("is_update_required", mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> bool:
        # Only a literal true/"true" counts; anything else leaves the update optional.
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return v is True

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["RemoteBundleDescriptor"]:
        """Parse a JSON body. Returns None for `{}` (nothing published); `null` is rejected."""
        if not isinstance(payload, dict):
            raise DescriptorError(f"Remote bundle descriptor must be a JSON object, got {type(payload).__name__}")
        if len(payload) == 0:
            return None
        return cls.model_validate(payload)


__all__ = [
    "InitOptions",
    "RemoteBundleDescriptor",
]
