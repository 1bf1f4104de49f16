"""
Tool execution for the FluidSDK MCP Server.

Tools:
  - calculate(operation, a, b)     add / subtract / multiply / divide
  - get_weather(location, unit)    simulated reading, no live data source
  - echo(message)                  "Echo: <message>"
  - get_timestamp(format)          iso / unix / locale

``validate()`` checks arguments against the tool's input schema and the
tool-specific rules (division by zero, results that overflow) and raises ``InvalidParamsError``.
The dispatcher calls it before the payment gate so a malformed call is
never charged. ``execute()`` assumes validated arguments.

``format`` on get_timestamp is lenient: an unknown value falls back to
``iso`` instead of failing.
"""

from __future__ import annotations

import json
import logging
import math
import random
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from errors import InvalidParamsError
from models import Success, ToolName

logger = logging.getLogger("fluid-mcp.tools")

WEATHER_CONDITIONS = ("Sunny", "Cloudy", "Rainy", "Windy", "Partly Cloudy")
TEMPERATURE_RANGE_C = (10, 39)
HUMIDITY_RANGE = (40, 99)
WIND_SPEED_RANGE = (5, 24)

TIMESTAMP_FORMATS = ("iso", "unix", "locale")

# One valid call per tool, attached to InvalidParams failures
EXAMPLES: dict[ToolName, dict[str, Any]] = {
    ToolName.CALCULATE: {"operation": "add", "a": 10, "b": 5},
    ToolName.GET_WEATHER: {"location": "New York", "unit": "celsius"},
    ToolName.ECHO: {"message": "Hello, world"},
    ToolName.GET_TIMESTAMP: {"format": "iso"},
}

# (tool, field) pairs whose enum is advisory rather than enforced
_LENIENT_ENUMS = {(ToolName.GET_TIMESTAMP, "format")}


# Integral floats at or beyond 2**53 are not exact; keep them as floats
_EXACT_INT_LIMIT = 2 ** 53


def normalize_number(value: float | int) -> float | int:
    """Collapse integral floats to ints so ``10.0`` renders as ``10``."""
    if isinstance(value, float) and value.is_integer() and abs(value) < _EXACT_INT_LIMIT:
        return int(value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite(value: float | int) -> bool:
    # ints compare exactly against float max, no conversion
    if isinstance(value, int):
        return abs(value) <= sys.float_info.max
    return math.isfinite(value)


def _arithmetic(operation: str, a: float | int, b: float | int) -> float | int:
    """Apply a calculate operation. Overflow yields ``inf``, never an exception."""
    try:
        if operation == "add":
            return a + b
        if operation == "subtract":
            return a - b
        if operation == "multiply":
            return a * b
        if operation == "divide":
            if b == 0:
                raise InvalidParamsError("Division by zero is not allowed")
            return a / b
    except OverflowError:
        return math.inf
    raise InvalidParamsError(f"Unknown operation: {operation}")


def _iso_now(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ToolExecutor:
    """Validates and runs the closed set of tools.

    ``rng`` and ``clock`` are injectable for deterministic tests.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._handlers: dict[ToolName, Callable[[dict[str, Any]], Success]] = {
            ToolName.CALCULATE: self._calculate,
            ToolName.GET_WEATHER: self._get_weather,
            ToolName.ECHO: self._echo,
            ToolName.GET_TIMESTAMP: self._get_timestamp,
        }

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, tool: ToolName, schema: dict[str, Any], arguments: dict[str, Any]) -> dict[str, Any]:
        """Return the arguments restricted to the schema, or raise InvalidParamsError."""
        properties: dict[str, Any] = schema.get("properties", {})
        required: list[str] = list(schema.get("required", []))
        hint = {"required": required, "example": EXAMPLES[tool]}

        missing = [
            name for name in required
            if arguments.get(name) is None or arguments.get(name) == ""
        ]
        if missing:
            raise InvalidParamsError(
                f"Missing required parameter(s): {', '.join(missing)}",
                data={**hint, "missing": missing},
            )

        cleaned: dict[str, Any] = {}
        for name, prop in properties.items():
            if name not in arguments or arguments[name] is None:
                continue
            value = arguments[name]
            expected = prop.get("type")
            if expected == "number":
                if not _is_number(value) or not _is_finite(value):
                    raise InvalidParamsError(
                        f"Parameter '{name}' must be a finite number", data=hint
                    )
            elif expected == "string" and not isinstance(value, str):
                raise InvalidParamsError(f"Parameter '{name}' must be a string", data=hint)

            allowed = prop.get("enum")
            if allowed and value not in allowed and (tool, name) not in _LENIENT_ENUMS:
                raise InvalidParamsError(
                    f"Invalid {name} '{value}'. Must be one of: {', '.join(allowed)}",
                    data={**hint, "allowed": list(allowed)},
                )
            cleaned[name] = value

        if tool is ToolName.CALCULATE:
            if cleaned["operation"] == "divide" and cleaned["b"] == 0:
                raise InvalidParamsError("Division by zero is not allowed", data=hint)
            # Overflow is a caller error, caught here so it is never charged
            if not _is_finite(_arithmetic(cleaned["operation"], cleaned["a"], cleaned["b"])):
                raise InvalidParamsError("Result is not a finite number", data=hint)

        return cleaned

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, tool: ToolName, arguments: dict[str, Any]) -> Success:
        logger.debug("Executing tool %s", tool.value)
        return self._handlers[tool](arguments)

    @staticmethod
    def _as_json(value: dict[str, Any]) -> Success:
        return Success(value=value, text=json.dumps(value, indent=2, ensure_ascii=False))

    def _calculate(self, args: dict[str, Any]) -> Success:
        operation = args["operation"]
        a = normalize_number(args["a"])
        b = normalize_number(args["b"])
        result = normalize_number(_arithmetic(operation, a, b))
        return self._as_json({
            "operation": operation,
            "operands": [a, b],
            "result": result,
            "expression": f"{a} {operation} {b} = {result}",
        })

    def _get_weather(self, args: dict[str, Any]) -> Success:
        unit = args.get("unit") or "celsius"
        temp_c = self._rng.randint(*TEMPERATURE_RANGE_C)
        fahrenheit = unit == "fahrenheit"
        return self._as_json({
            "location": args["location"],
            "temperature": normalize_number(round(temp_c * 9 / 5 + 32, 1)) if fahrenheit else temp_c,
            "unit": "°F" if fahrenheit else "°C",
            "condition": self._rng.choice(WEATHER_CONDITIONS),
            "humidity": self._rng.randint(*HUMIDITY_RANGE),
            "wind_speed": self._rng.randint(*WIND_SPEED_RANGE),
            "timestamp": _iso_now(self._clock()),
        })

    def _echo(self, args: dict[str, Any]) -> Success:
        text = f"Echo: {args['message']}"
        return Success(value={"message": args["message"], "echo": text}, text=text)

    def _get_timestamp(self, args: dict[str, Any]) -> Success:
        now = self._clock()
        fmt = args.get("format") or "iso"
        if fmt not in TIMESTAMP_FORMATS:
            logger.debug("Unknown timestamp format %r, falling back to iso", fmt)
            fmt = "iso"

        if fmt == "unix":
            timestamp: str | int = int(now.timestamp())
        elif fmt == "locale":
            timestamp = now.astimezone().strftime("%c")
        else:
            timestamp = _iso_now(now)

        return self._as_json({"format": fmt, "timestamp": timestamp, "raw": _iso_now(now)})
