from __future__ import annotations

from types import MappingProxyType

# Message keys emitted by checks, mapped to their English text. Positional
# placeholders follow `str.format` (`{0}`, `{1}`, ...).
MESSAGES = MappingProxyType(
    {
        "final.parameter": "Parameter {0} should be final.",
    }
)


def format_message(key: str, args: tuple[str, ...] = ()) -> str:
    template = MESSAGES.get(key)
    if template is None:
        # Unknown keys still produce a readable message instead of failing the run.
        return f"{key}: {', '.join(args)}" if args else key
    return template.format(*args)
