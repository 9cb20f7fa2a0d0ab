"""
Target Descriptor - The recorded description of an element to re-locate.

Descriptors are produced at capture time by a recorder and frozen
thereafter. They are accepted either as models or as the JSON mappings the
recorder emits (camelCase keys such as ``preferredLocators`` are aliases).

Example:
    >>> descriptor = TargetDescriptor.parse({
    ...     "fingerprint": {"tag": "button", "text": "Save"},
    ...     "preferredLocators": [{"type": "text", "value": "Save", "confidence": 0.9}],
    ... })
    >>> descriptor.preferred_locators[0].type
    <LocatorType.TEXT: 'text'>
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from web_relocator.engine.fingerprint import normalize_text
from web_relocator.exceptions import DescriptorError


class LocatorType(str, Enum):
    """Query strategy a locator is evaluated with."""
    ID = "id"
    CSS = "css"
    ROLE = "role"
    TEXT = "text"
    XPATH = "xpath"


class LocatorSpec(BaseModel):
    """
    A single recorded locator.
    
    Attributes:
        type: Strategy to evaluate the locator with
        value: Id, selector, role, text or XPath expression
        role: Role for ``role`` locators (falls back to ``value``)
        name: Accessible-name substring for ``role`` locators
        tag: Tag restriction for ``text`` locators
        confidence: Caller-assigned trust weight in [0, 1]
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: LocatorType
    value: str = ""
    role: Optional[str] = None
    name: Optional[str] = None
    tag: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("tag")
    @classmethod
    def _lower_tag(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else None


class Fingerprint(BaseModel):
    """Recorded descriptive attributes of the originally selected node."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tag: Optional[str] = None
    text: Optional[str] = None
    class_tokens: FrozenSet[str] = Field(default_factory=frozenset, alias="classTokens")
    attrs: Dict[str, str] = Field(default_factory=dict)

    @field_validator("tag")
    @classmethod
    def _lower_tag(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else None

    @field_validator("text")
    @classmethod
    def _normalize_text(cls, value: Optional[str]) -> Optional[str]:
        return normalize_text(value) or None

    @field_validator("class_tokens", mode="before")
    @classmethod
    def _split_classes(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset(value.split())
        return value

    @field_validator("attrs", mode="before")
    @classmethod
    def _drop_empty_attrs(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        return {str(k): str(v) for k, v in value.items() if v is not None and v != ""}


class AncestorStep(BaseModel):
    """One level of the recorded ancestor trail."""
    model_config = ConfigDict(frozen=True)

    tag: Optional[str] = None
    index: int = 0

    @field_validator("tag")
    @classmethod
    def _lower_tag(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else None

    @field_validator("index", mode="before")
    @classmethod
    def _clamp_index(cls, value: Any) -> int:
        if value is None:
            return 0
        return max(int(value), 0)


class FrameRef(BaseModel):
    """Frame the element was recorded in."""
    model_config = ConfigDict(frozen=True)

    href: Optional[str] = None


class TargetContext(BaseModel):
    """
    Structural context at capture time.
    
    The ancestor trail is ordered root-first: the first entry is a child
    of ``body`` and the last entry is the recorded node's parent.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ancestor_trail: List[AncestorStep] = Field(default_factory=list, alias="ancestorTrail")
    frame: FrameRef = Field(default_factory=FrameRef)


class TargetDescriptor(BaseModel):
    """Everything recorded about one target element."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fingerprint: Fingerprint = Field(default_factory=Fingerprint)
    preferred_locators: List[LocatorSpec] = Field(
        default_factory=list, alias="preferredLocators"
    )
    context: TargetContext = Field(default_factory=TargetContext)

    @field_validator("preferred_locators", mode="before")
    @classmethod
    def _drop_untyped(cls, value: Any) -> Any:
        # Recorders sometimes emit placeholder entries without a type
        if isinstance(value, list):
            return [item for item in value if not isinstance(item, Mapping) or item.get("type")]
        return value

    @property
    def ancestor_trail(self) -> List[AncestorStep]:
        return self.context.ancestor_trail

    @property
    def recorded_href(self) -> Optional[str]:
        return self.context.frame.href

    @property
    def is_searchable(self) -> bool:
        """True when at least one strategy or fallback can produce candidates."""
        return bool(
            self.preferred_locators
            or self.context.ancestor_trail
            or self.fingerprint.text
        )

    @classmethod
    def parse(cls, data: Union["TargetDescriptor", Mapping[str, Any]]) -> "TargetDescriptor":
        """
        Validate a descriptor mapping.
        
        Args:
            data: A TargetDescriptor or its JSON mapping
            
        Returns:
            A frozen TargetDescriptor
            
        Raises:
            DescriptorError: If the mapping is not a valid descriptor
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise DescriptorError(f"Descriptor must be a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise DescriptorError("Invalid target descriptor", e.errors()) from e
