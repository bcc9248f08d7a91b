"""
Tests for value coercion into props instances.

Tests create_instance() across dataclass, pydantic and plain schema
types, and convert_value() for each conversion step.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Protocol

import pytest
from markupsafe import Markup
from pydantic import BaseModel, ConfigDict

from storykit.core.coercion import convert_value, create_instance, parse_bool
from storykit.core.deserializer import StructuredDeserializer
from storykit.core.errors import DeserializationError, UnresolvedInterfaceError
from storykit.core.resolution import HtmlContent, InterfaceResolver


class Variant(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Status(Enum):
    DRAFT = 1
    LIVE = 2


@dataclass
class ButtonProps:
    text: str = "Click me"
    disabled: bool = False
    variant: Variant = Variant.PRIMARY


@dataclass
class Link:
    href: str = ""
    label: str = ""


@dataclass
class EverythingProps:
    count: int = 0
    ratio: float = 0.0
    price: Decimal = Decimal("0")
    published: date = date.min
    updated: datetime = datetime.min
    opens: time = time.min
    status: Status = Status.DRAFT
    links: list[Link] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    primary: Link | None = None
    body: HtmlContent | None = None
    limit: int | None = None


@dataclass(frozen=True)
class FrozenProps:
    title: str = "Frozen"
    size: int = 1


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = "Model"
    items: list[str] = []


class PlainProps:
    title: str = "Plain"
    items: list[int]

    @property
    def upper(self) -> str:
        return self.title.upper()


@dataclass
class GuardedProps:
    text: str = "Click me"
    width: int = 0

    def __post_init__(self) -> None:
        if self.width < 0:
            raise ValueError("width must be >= 0")


@dataclass
class PickyProps:
    title: str = "Picky"
    size: int = 1

    def __post_init__(self) -> None:
        raise ValueError("never valid")


class IMissing(Protocol):
    def ping(self) -> str: ...


@dataclass
class NeedsMissingProps:
    name: str = ""
    thing: IMissing | None = None


@pytest.fixture
def deserializer() -> StructuredDeserializer:
    return StructuredDeserializer(InterfaceResolver())


class TestCreateInstance:
    """Tests for create_instance()."""

    def test_supplied_value_and_defaults(self, deserializer):
        """Supplied properties are set; the rest keep their defaults."""
        props = create_instance(ButtonProps, {"text": "Save"}, deserializer)
        assert props == ButtonProps(text="Save", disabled=False, variant=Variant.PRIMARY)

    def test_enum_by_name_any_case(self, deserializer):
        """Enum member names match case-insensitively."""
        props = create_instance(ButtonProps, {"variant": "SECONDARY"}, deserializer)
        assert props.variant is Variant.SECONDARY

    def test_keys_case_insensitive(self, deserializer):
        """Property names match case-insensitively."""
        props = create_instance(ButtonProps, {"TEXT": "Go", "Disabled": "true"}, deserializer)
        assert props.text == "Go"
        assert props.disabled is True

    def test_unknown_keys_ignored(self, deserializer):
        """Keys that are not properties are skipped."""
        props = create_instance(ButtonProps, {"colour": "red"}, deserializer)
        assert props == ButtonProps()

    def test_bad_value_skipped_and_logged(self, deserializer, caplog):
        """A failing conversion leaves that property at its default."""
        with caplog.at_level(logging.WARNING, logger="storykit.core.coercion"):
            props = create_instance(
                ButtonProps, {"disabled": "maybe", "text": "Kept"}, deserializer
            )
        assert props.disabled is False
        assert props.text == "Kept"
        assert "Error setting property disabled" in caplog.text

    def test_constructor_rejection_keeps_other_values(self, deserializer, caplog):
        """A value rejected by __post_init__ is dropped; the others are kept."""
        with caplog.at_level(logging.WARNING, logger="storykit.core.coercion"):
            props = create_instance(GuardedProps, {"text": "Save", "width": "-1"}, deserializer)
        assert props == GuardedProps(text="Save", width=0)
        assert "Error setting property width" in caplog.text

    def test_constructor_rejection_order_independent(self, deserializer):
        """The rejected value is found wherever it appears in the input."""
        props = create_instance(GuardedProps, {"width": "-5", "text": "Go"}, deserializer)
        assert props == GuardedProps(text="Go", width=0)

    def test_rejected_defaults_never_raise(self, deserializer):
        """A constructor that rejects everything still yields an instance."""
        props = create_instance(PickyProps, {"title": "x"}, deserializer)
        assert isinstance(props, PickyProps)
        assert (props.title, props.size) == ("Picky", 1)

    def test_frozen_dataclass(self, deserializer):
        """Frozen dataclasses are built in one step."""
        props = create_instance(FrozenProps, {"size": "7"}, deserializer)
        assert props == FrozenProps(title="Frozen", size=7)

    def test_frozen_pydantic_model(self, deserializer):
        """Frozen pydantic models are built in one step."""
        props = create_instance(FrozenModel, {"items": '["a", "b"]'}, deserializer)
        assert props.title == "Model"
        assert props.items == ["a", "b"]

    def test_plain_class(self, deserializer):
        """Plain classes are populated attribute by attribute."""
        props = create_instance(PlainProps, {"items": [1, 2]}, deserializer)
        assert props.title == "Plain"
        assert props.items == [1, 2]

    def test_plain_class_missing_attribute_filled(self, deserializer):
        """Annotated attributes without a default get the type default."""
        props = create_instance(PlainProps, {}, deserializer)
        assert props.items == []

    def test_read_only_property_ignored(self, deserializer):
        """Properties without a setter are skipped."""
        props = create_instance(PlainProps, {"upper": "NOPE", "title": "x"}, deserializer)
        assert props.upper == "X"

    def test_story_presets_pass_through(self, deserializer):
        """Already-typed values are used as they are."""
        link = Link(href="/a", label="A")
        props = create_instance(
            EverythingProps, {"primary": link, "status": Status.LIVE}, deserializer
        )
        assert props.primary is link
        assert props.status is Status.LIVE

    def test_json_text_for_collection(self, deserializer):
        """JSON text is deserialized into collection properties."""
        props = create_instance(
            EverythingProps, {"links": '[{"Href": "/x", "label": "X"}]'}, deserializer
        )
        assert props.links == [Link(href="/x", label="X")]

    def test_parsed_json_for_complex(self, deserializer):
        """Parsed JSON nodes are deserialized into complex properties."""
        props = create_instance(EverythingProps, {"primary": {"href": "/y"}}, deserializer)
        assert props.primary == Link(href="/y", label="")

    def test_malformed_json_property_skipped(self, deserializer):
        """Broken JSON text for one property does not lose the others."""
        props = create_instance(EverythingProps, {"links": "[{", "count": "4"}, deserializer)
        assert props.links == []
        assert props.count == 4

    def test_unresolved_interface_propagates(self, deserializer):
        """Unresolvable interfaces abort the whole coercion."""
        with pytest.raises(UnresolvedInterfaceError) as exc_info:
            create_instance(NeedsMissingProps, {"thing": {"x": 1}, "name": "n"}, deserializer)
        assert exc_info.value.interface_name.endswith("IMissing")

    def test_html_content_from_text(self, deserializer):
        """Text for an HtmlContent property becomes Markup."""
        props = create_instance(EverythingProps, {"body": "<b>Hi</b>"}, deserializer)
        assert isinstance(props.body, Markup)
        assert str(props.body) == "<b>Hi</b>"

    def test_default_deserializer_from_registry(self):
        """Without a deserializer the global registry's is used."""
        props = create_instance(EverythingProps, {"primary": '{"href": "/z"}'})
        assert props.primary == Link(href="/z")


class TestConvertValue:
    """Tests for single-value conversion."""

    def test_none_for_optional(self, deserializer):
        """None stays None for Optional targets."""
        assert convert_value(None, int | None, deserializer) is None

    def test_none_for_value_type_rejected(self, deserializer):
        """None is not a valid int."""
        with pytest.raises(ValueError):
            convert_value(None, int, deserializer)

    @pytest.mark.parametrize(
        "value,target,expected",
        [
            ("42", int, 42),
            (" 42 ", int, 42),
            (3.0, int, 3),
            ("2.5", float, 2.5),
            (2, float, 2.0),
            ("19.99", Decimal, Decimal("19.99")),
            ("2024-05-01", date, date(2024, 5, 1)),
            ("2024-05-01T10:30:00", datetime, datetime(2024, 5, 1, 10, 30)),
            ("09:15", time, time(9, 15)),
            (datetime(2024, 5, 1, 10, 30), date, date(2024, 5, 1)),
            (date(2024, 5, 1), datetime, datetime(2024, 5, 1)),
        ],
    )
    def test_simple_types(self, deserializer, value, target, expected):
        """Numeric and temporal values convert from text and neighbours."""
        assert convert_value(value, target, deserializer) == expected

    def test_fractional_float_to_int_rejected(self, deserializer):
        """Lossy float to int conversion fails."""
        with pytest.raises(ValueError):
            convert_value(2.5, int, deserializer)

    @pytest.mark.parametrize("text", ["secondary", "SECONDARY", "Secondary", " secondary "])
    def test_enum_name_casing(self, deserializer, text):
        """Enum names match in any letter casing."""
        assert convert_value(text, Variant, deserializer) is Variant.SECONDARY

    def test_enum_by_value(self, deserializer):
        """Non-string values go through the enum constructor."""
        assert convert_value(2, Status, deserializer) is Status.LIVE

    def test_enum_unknown_name(self, deserializer):
        """Unknown names fail."""
        with pytest.raises(KeyError):
            convert_value("tertiary", Variant, deserializer)

    def test_text_from_enum_uses_name(self, deserializer):
        """Enum members render as their name when converted to text."""
        assert convert_value(Variant.PRIMARY, str, deserializer) == "PRIMARY"

    def test_text_from_number(self, deserializer):
        """Any value converts to text."""
        assert convert_value(12, str, deserializer) == "12"

    def test_bool_from_non_string(self, deserializer):
        """Non-strings use truthiness."""
        assert convert_value(1, bool, deserializer) is True
        assert convert_value(0, bool, deserializer) is False

    def test_union_first_match(self, deserializer):
        """Unions try alternatives in order."""
        assert convert_value("5", int | str, deserializer) == 5
        assert convert_value("five", int | str, deserializer) == "five"

    def test_empty_text_for_complex_rejected(self, deserializer):
        """Blank text is not JSON."""
        with pytest.raises(ValueError):
            convert_value("  ", Link, deserializer)

    def test_invalid_json_for_complex(self, deserializer):
        """Broken JSON text raises a DeserializationError."""
        with pytest.raises(DeserializationError):
            convert_value("{not json", Link, deserializer)

    def test_set_from_json_array(self, deserializer):
        """JSON arrays build the declared collection shape."""
        assert convert_value('["a", "b", "a"]', set[str], deserializer) == {"a", "b"}

    def test_unknown_object_passes_through(self, deserializer):
        """Values with no applicable conversion pass through."""
        marker = object()
        assert convert_value(marker, Link, deserializer) is marker


class TestParseBool:
    """Tests for boolean text parsing."""

    @pytest.mark.parametrize("text", ["true", "TRUE", " True "])
    def test_true(self, text):
        assert parse_bool(text) is True

    @pytest.mark.parametrize("text", ["false", "False", "FALSE "])
    def test_false(self, text):
        assert parse_bool(text) is False

    @pytest.mark.parametrize("text", ["yes", "1", "on", ""])
    def test_other_text_rejected(self, text):
        """Only true/false are recognised."""
        with pytest.raises(ValueError):
            parse_bool(text)
