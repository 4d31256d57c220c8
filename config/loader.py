"""Configuration file loader and validator.

Handles reading, formatting, and validating settings from the INI configuration file.
Raises exceptions for any issues encountered during loading.
"""

from __future__ import annotations

import ast
import configparser
import logging
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from core.trans.retry import BACKOFF_STRATEGIES
from models.config_models import Config
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from collections.abc import Callable
    from dataclasses import Field as DataclassField
else:
    from dataclasses import Field as DataclassField

__all__: list[str] = [
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ALLOWED_TRANSLATION_ENGINES: list[str] = ["openrouter"]

# (section, key, minimum value)
NUMERIC_LOWER_BOUNDS: list[tuple[str, str, float]] = [
    ("API", "TIMEOUT", 0.001),
    ("API", "MAX_TOKENS", 1),
    ("BATCH", "BATCH_SIZE", 1),
    ("BATCH", "MAX_BATCH_LENGTH", 1),
    ("BATCH", "PRIORITY_BATCHES", 0),
    ("BATCH", "INDIVIDUAL_FALLBACK_THRESHOLD", 1),
    ("RETRY", "MAX_RETRIES", 0),
    ("RETRY", "INITIAL_DELAY", 0),
    ("RETRY", "MAX_DELAY", 0),
    ("CACHE", "MEMORY_SIZE", 1),
    ("CACHE", "MEMORY_TTL", 0),
    ("CACHE", "SESSION_QUOTA", 0),
    ("BUDGET", "MIN_API_CALLS", 1),
    ("BUDGET", "MAX_API_CALLS", 1),
    ("BUDGET", "MIN_FALLBACK_ALLOWANCE", 0),
    ("BUDGET", "MAX_FALLBACK_ALLOWANCE", 0),
]


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Handles loading and validation of configuration settings.

    This class reads the configuration file, applies formatting rules, and validates settings.
    Keys missing from the file keep their defaults. The API key is never read from the file; engines
    take it from the environment.

    Args:
        config_filename (str): INI file name to load.
        script_name (str): Executing script name, used in error messaging.
        debug (bool): Optional override enabling debug mode.
        model (str | None): Optional override for the model identifier.

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str,
        script_name: str,
        **args,
    ) -> None:
        config_path = Path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create '{config_filename}' in the same directory as '{script_name}'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser()

        try:
            parser.read(config_filename, encoding="utf-8")
        except configparser.Error as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None

        self.config = Config()
        self._convert_settings(parser)
        self.config.GENERAL.SCRIPT_NAME = script_name
        # Apply command-line argument overrides
        if args.get("model"):
            self.config.API.MODEL = args["model"]
        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
            self.config.GENERAL.LOG_LEVEL = "DEBUG"
        self._validate_settings()

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Convert configuration settings from the parser to the Config object.

        Args:
            parser (ConfigParser): Parsed INI data.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if not parser.has_section(section.name):
                logger.debug("Skipping undefined section: '%s'", section.name)
                continue
            self._convert_section_field(parser, formatter, section)

    def _convert_section_field(
        self, parser: ConfigParser, formatter: _ConfigFormatter, section: DataclassField[Any]
    ) -> None:
        """Convert all fields in a configuration section.

        Args:
            parser (ConfigParser): Parsed INI data.
            formatter (_ConfigFormatter): Formatter used to coerce string values to typed values.
            section (Field[Any]): Target configuration section dataclass field.

        Raises:
            ConfigFormatError: If a value fails to format correctly.
        """
        for key in fields(getattr(self.config, section.name)):
            if not parser.has_option(section.name, key.name):
                logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                continue

            formatted_value = formatter.apply_format(section, key)
            setattr(getattr(self.config, section.name), key.name, formatted_value)

    def _validate_settings(self) -> None:
        """Validate engine name, backoff strategy, log level and numeric ranges.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        self._inspect_defined_item("API", "ENGINE", ALLOWED_TRANSLATION_ENGINES)
        self._validate_choice("RETRY", "BACKOFF", list(BACKOFF_STRATEGIES))
        self._validate_choice("GENERAL", "LOG_LEVEL", list(logging.getLevelNamesMapping()), normalize=str.upper)
        for section_name, key_name, minimum in NUMERIC_LOWER_BOUNDS:
            self._validate_minimum(section_name, key_name, minimum)

        budget = self.config.BUDGET
        if budget.MIN_API_CALLS > budget.MAX_API_CALLS:
            msg: str = (
                f"'BUDGET.MIN_API_CALLS' ({budget.MIN_API_CALLS}) must not exceed "
                f"'BUDGET.MAX_API_CALLS' ({budget.MAX_API_CALLS})"
            )
            raise ConfigValueError(msg)
        if budget.MIN_FALLBACK_ALLOWANCE > budget.MAX_FALLBACK_ALLOWANCE:
            msg = (
                f"'BUDGET.MIN_FALLBACK_ALLOWANCE' ({budget.MIN_FALLBACK_ALLOWANCE}) must not exceed "
                f"'BUDGET.MAX_FALLBACK_ALLOWANCE' ({budget.MAX_FALLBACK_ALLOWANCE})"
            )
            raise ConfigValueError(msg)

    def _inspect_defined_item(self, section_name: str, key_name: str, defined_list: list[str]) -> None:
        """Verify that a configuration value matches the allowed options.

        Logs a warning for unrecognized values but does not raise.

        Raises:
            ConfigTypeError: If the configured value is not a string.
        """
        value: Any = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"
        if not isinstance(value, str):
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)
        if value not in defined_list:
            logger.warning("Unknown value '%s' is set for '%s'", value, field_name)

    def _validate_choice(
        self,
        section_name: str,
        key_name: str,
        choices: list[str],
        normalize: Callable[[str], str] = str.lower,
    ) -> None:
        """Require a value from a fixed set, storing it in normalized form.

        Raises:
            ConfigValueError: If the value is not one of the choices.
        """
        value: str = normalize(str(getattr(getattr(self.config, section_name), key_name)))
        if value not in choices:
            msg: str = f"Unsupported value used for '{section_name}.{key_name}': {value}"
            raise ConfigValueError(msg)
        setattr(getattr(self.config, section_name), key_name, value)

    def _validate_minimum(self, section_name: str, key_name: str, minimum: float) -> None:
        value: int | float = getattr(getattr(self.config, section_name), key_name)
        if value < minimum:
            msg: str = f"'{section_name}.{key_name}' must be at least {minimum:g} (got {value})"
            raise ConfigValueError(msg)


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, str)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert INI value to the expected Python type based on the Config field type.

        Args:
            section (DataclassField[Any]): Configuration section field containing the key.
            key (DataclassField[Any]): Target field within the section.

        Returns:
            Any: Parsed value coerced to the type declared in the config dataclass.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If a quoted string is not a valid literal.
            ConfigTypeError: If an unexpected type is encountered during coercion.
        """
        formatters: dict[type[Any], Callable[[DataclassField[Any], DataclassField[Any]], Any]] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
            str: self.parse_as_string,
        }

        formatter: Callable[[DataclassField[Any], DataclassField[Any]], Any] | None = formatters.get(
            type(getattr(getattr(self.config, section.name), key.name))
        )
        if formatter is None:
            msg = f"Unsupported setting type for {section.name}.{key.name}"
            raise ConfigTypeError(msg)
        try:
            return formatter(section, key)
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {err}"
            raise ConfigFormatError(msg) from err
        except ValueError as err:
            msg = f"Invalid value for {section.name}.{key.name}: {err}"
            raise ConfigValueError(msg) from err
        except TypeError as err:
            msg = f"Invalid value for {section.name}.{key.name}: {err}"
            raise ConfigTypeError(msg) from err

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        """Convert INI string to float."""
        value: str = self.parser.get(section.name, key.name)
        for char in ("'", '"', "%"):
            value = value.removeprefix(char).removesuffix(char)
        return float(value)

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        """Convert INI string to integer."""
        value: str = self.parser.get(section.name, key.name)
        for char in ("'", '"', "%"):
            value = value.removeprefix(char).removesuffix(char)
        return int(float(value))

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        """Convert INI string to boolean."""
        return self.parser.getboolean(section.name, key.name)

    def parse_as_string(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        """Return the INI string, evaluating it as a literal when it is quoted."""
        value: str = self.parser.get(section.name, key.name).strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            literal: Any = ast.literal_eval(value)
            if not isinstance(literal, str):
                msg = f"expected a string, got {type(literal).__name__}"
                raise TypeError(msg)
            return literal
        return value
