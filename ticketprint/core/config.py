"""Configuration loading and validation for ticketprint.

Packaged defaults are merged with an optional user file at
`$XDG_CONFIG_HOME/ticketprint/config.yaml` and the result is validated
against the bundled JSON schema.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from ticketprint.core.errors import ConfigLoadError, ConfigValidationError

LOGGER = logging.getLogger(__name__)

_TRANSPORT_TYPES = ("rfcomm", "ble")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class ReceiptLayout:
    business_name: str = "RUKUNDO EGUMEHO TRANSPORTERS"
    contact_lines: tuple[str, ...] = (
        "+256 762076555 | +256 772169814",
        "Kagadi Taxi Park",
        "Plot 63 Kagadi",
    )
    currency: str = "UGX"
    terms_notice: str = "Visit link below to review Terms and Conditions"
    terms_url: str = "www.link.co.ug/terms-of-service.php"
    thank_you: str = "Thank you for travelling with us!"
    label_width: int = 12
    line_width: int = 32
    qr_size_px: int = 200


@dataclass(frozen=True)
class BluetoothSettings:
    scan_timeout_s: float = 8.0
    connect_timeout_s: float = 10.0
    transmit_timeout_s: float = 30.0
    transport: str = "rfcomm"
    rfcomm_channel: int = 1
    ble_write_char_uuid: str = "00002af1-0000-1000-8000-00805f9b34fb"
    ble_write_with_response: bool = False
    ble_chunk_size: int = 180


@dataclass(frozen=True)
class PrinterSettings:
    feed_lines: int = 3


@dataclass(frozen=True)
class AppConfig:
    receipt: ReceiptLayout = field(default_factory=ReceiptLayout)
    bluetooth: BluetoothSettings = field(default_factory=BluetoothSettings)
    printer: PrinterSettings = field(default_factory=PrinterSettings)


@dataclass(frozen=True)
class LoadedConfig:
    config: AppConfig
    warnings: tuple[str, ...]


def _load_schema_validator(name: str) -> Any:
    schema_text = resources.files("ticketprint.schemas").joinpath(name).read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def validate_document(doc: Any, schema_name: str, *, source: str, error_cls: type[Exception]) -> None:
    validator = _load_schema_validator(schema_name)
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise error_cls(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "ticketprint/config.yaml"


def read_yaml(path: Path | Traversable, *, error_cls: type[Exception] = ConfigValidationError) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except (yaml.YAMLError, ValueError) as exc:
        raise error_cls(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise error_cls(f"File {path} must contain a mapping at root")
    return loaded


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build_config(doc: dict[str, Any]) -> AppConfig:
    receipt = doc["receipt"]
    bluetooth = doc["bluetooth"]
    printer = doc["printer"]

    transport = bluetooth["transport"]
    if transport not in _TRANSPORT_TYPES:
        raise ConfigValidationError(f"Unsupported transport type '{transport}'")

    return AppConfig(
        receipt=ReceiptLayout(
            business_name=receipt["business_name"],
            contact_lines=tuple(receipt["contact_lines"]),
            currency=receipt["currency"],
            terms_notice=receipt["terms_notice"],
            terms_url=receipt["terms_url"],
            thank_you=receipt["thank_you"],
            label_width=int(receipt["label_width"]),
            line_width=int(receipt["line_width"]),
            qr_size_px=int(receipt["qr_size_px"]),
        ),
        bluetooth=BluetoothSettings(
            scan_timeout_s=float(bluetooth["scan_timeout_s"]),
            connect_timeout_s=float(bluetooth["connect_timeout_s"]),
            transmit_timeout_s=float(bluetooth["transmit_timeout_s"]),
            transport=transport,
            rfcomm_channel=int(bluetooth["rfcomm_channel"]),
            ble_write_char_uuid=bluetooth["ble_write_char_uuid"].strip().lower(),
            ble_write_with_response=bool(bluetooth["ble_write_with_response"]),
            ble_chunk_size=int(bluetooth["ble_chunk_size"]),
        ),
        printer=PrinterSettings(feed_lines=int(printer["feed_lines"])),
    )


def load_config(path: Path | None = None) -> LoadedConfig:
    defaults_path = resources.files("ticketprint.data").joinpath("defaults.yaml")
    doc = read_yaml(defaults_path)
    warnings: list[str] = []

    user_path = path or user_config_path()
    if user_path.exists():
        user_doc = read_yaml(user_path)
        if user_doc:
            warning = f"User configuration {user_path} overrides packaged defaults"
            LOGGER.warning(warning)
            warnings.append(warning)
        doc = _merge(doc, user_doc)
    elif path is not None:
        raise ConfigLoadError(f"Configuration file {path} does not exist")

    validate_document(doc, "config.schema.json", source=str(user_path), error_cls=ConfigValidationError)
    return LoadedConfig(config=_build_config(doc), warnings=tuple(warnings))
