"""
Leaf helpers with no dependency on the dispatcher.
"""

import asyncio
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, AsyncIterable, Awaitable, Callable, Iterable, Optional, Union

# Pending fire-and-forget tasks, held until done
_background_tasks: "set[asyncio.Future]" = set()


# ─────────────────────────────────────────────────────────────────────
# ASYNC
# ─────────────────────────────────────────────────────────────────────

async def consume_stream(stream: AsyncIterable[Any]) -> None:
    """Read a stream to the end, discarding every item."""
    async for _ in stream:
        pass


def run_async_fn_without_blocking(fn: Callable[..., Awaitable[Any]], *args: Any) -> "asyncio.Future":
    """
    Start fn(*args) on the running loop and return immediately.

    Must be called from inside a running event loop.
    """
    task = asyncio.ensure_future(fn(*args))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def sleep(ms: float) -> None:
    await asyncio.sleep(ms / 1000)


# ─────────────────────────────────────────────────────────────────────
# CLASS NAMES
# ─────────────────────────────────────────────────────────────────────

ClassValue = Union[str, int, float, bool, None, list, tuple, dict[str, Any]]

_KEYWORD_GROUPS = {
    "display": {
        "block", "inline-block", "inline", "flex", "inline-flex", "grid",
        "inline-grid", "table", "contents", "hidden", "flow-root",
    },
    "position": {"static", "fixed", "absolute", "relative", "sticky"},
    "visibility": {"visible", "invisible", "collapse"},
    "font-style": {"italic", "not-italic"},
    "text-transform": {"uppercase", "lowercase", "capitalize", "normal-case"},
    "text-decoration": {"underline", "overline", "line-through", "no-underline"},
}

# Longest prefixes first so "px-" wins over "p-"
_PREFIX_GROUPS = [
    ("min-w-", "min-w"), ("max-w-", "max-w"), ("min-h-", "min-h"), ("max-h-", "max-h"),
    ("gap-x-", "gap-x"), ("gap-y-", "gap-y"), ("gap-", "gap"),
    ("inset-", "inset"), ("top-", "top"), ("right-", "right"), ("bottom-", "bottom"), ("left-", "left"),
    ("px-", "px"), ("py-", "py"), ("pt-", "pt"), ("pr-", "pr"), ("pb-", "pb"), ("pl-", "pl"), ("p-", "p"),
    ("mx-", "mx"), ("my-", "my"), ("mt-", "mt"), ("mr-", "mr"), ("mb-", "mb"), ("ml-", "ml"), ("m-", "m"),
    ("w-", "w"), ("h-", "h"), ("z-", "z"), ("opacity-", "opacity"),
    ("leading-", "leading"), ("tracking-", "tracking"),
    ("justify-items-", "justify-items"), ("justify-self-", "justify-self"), ("justify-", "justify"),
    ("items-", "items"),
]

# A group listed here also overrides the groups it covers
_CONFLICTS = {
    "p": ("px", "py", "pt", "pr", "pb", "pl"),
    "px": ("pr", "pl"),
    "py": ("pt", "pb"),
    "m": ("mx", "my", "mt", "mr", "mb", "ml"),
    "mx": ("mr", "ml"),
    "my": ("mt", "mb"),
    "inset": ("top", "right", "bottom", "left"),
    "gap": ("gap-x", "gap-y"),
    "rounded": ("rounded-t", "rounded-r", "rounded-b", "rounded-l",
                "rounded-tl", "rounded-tr", "rounded-br", "rounded-bl"),
    "rounded-t": ("rounded-tl", "rounded-tr"),
    "rounded-r": ("rounded-tr", "rounded-br"),
    "rounded-b": ("rounded-br", "rounded-bl"),
    "rounded-l": ("rounded-tl", "rounded-bl"),
}

_BG_KEYWORDS = {
    "bg-size": {"auto", "cover", "contain"},
    "bg-position": {
        "bottom", "center", "left", "left-bottom", "left-top",
        "right", "right-bottom", "right-top", "top",
    },
    "bg-repeat": {"repeat", "no-repeat", "repeat-x", "repeat-y", "repeat-round", "repeat-space"},
    "bg-attachment": {"fixed", "local", "scroll"},
}
_SHADOW_SIZES = {"sm", "md", "lg", "xl", "2xl", "inner", "none"}
_ROUNDED_SIDE = re.compile(r"^rounded-(tl|tr|br|bl|t|r|b|l)(-|$)")

_FONT_SIZES = {"xs", "sm", "base", "lg", "xl"} | {f"{n}xl" for n in range(2, 10)}
_FONT_WEIGHTS = {"thin", "extralight", "light", "normal", "medium", "semibold", "bold", "extrabold", "black"}
_NUMERIC = re.compile(r"^\d|^\[\d")


def clsx(*inputs: ClassValue) -> str:
    """Flatten strings, nested sequences and {class: condition} dicts."""
    out: list[str] = []

    def walk(value: ClassValue) -> None:
        if not value or value is True:
            return
        if isinstance(value, str):
            out.append(value)
        elif isinstance(value, dict):
            out.extend(k for k, v in value.items() if v)
        elif isinstance(value, (list, tuple)):
            for item in value:
                walk(item)
        elif isinstance(value, (int, float)):
            out.append(str(value))

    for value in inputs:
        walk(value)
    return " ".join(out)


def _class_group(utility: str) -> Optional[str]:
    base = utility.lstrip("-")
    for group, names in _KEYWORD_GROUPS.items():
        if base in names:
            return group
    if base == "rounded":
        return "rounded"
    if base.startswith("rounded-"):
        side = _ROUNDED_SIDE.match(base)
        return f"rounded-{side.group(1)}" if side else "rounded"
    if base == "shadow":
        return "shadow"
    if base.startswith("shadow-"):
        value = base[len("shadow-"):]
        return "shadow" if value in _SHADOW_SIZES or _NUMERIC.match(value) else "shadow-color"
    if base.startswith("bg-"):
        value = base[len("bg-"):]
        for group, names in _BG_KEYWORDS.items():
            if value in names:
                return group
        if value == "none" or value.startswith(("gradient-", "[url(")):
            return "bg-image"
        return "bg-color"
    if base == "border" or re.match(r"^border-(\d+|\[\d)", base):
        return "border-width"
    if re.match(r"^border-[xytrbl](-|$)", base):
        return None
    if base.startswith("border-"):
        return "border-color"
    if base.startswith("text-"):
        value = base[len("text-"):]
        if value in _FONT_SIZES or _NUMERIC.match(value):
            return "font-size"
        if value in ("left", "center", "right", "justify", "start", "end"):
            return "text-align"
        if value in ("ellipsis", "clip"):
            return "text-overflow"
        if value in ("wrap", "nowrap", "balance", "pretty"):
            return "text-wrap"
        return "text-color"
    if base.startswith("font-"):
        value = base[len("font-"):]
        return "font-weight" if value in _FONT_WEIGHTS or _NUMERIC.match(value) else "font-family"
    for prefix, group in _PREFIX_GROUPS:
        if base.startswith(prefix):
            return group
    return None


def tw_merge(class_list: str) -> str:
    """
    Resolve Tailwind conflicts: for each variant + utility group only the
    last class survives; exact duplicates collapse to their last occurrence.
    """
    seen: set[str] = set()
    kept: list[str] = []
    for token in reversed(class_list.split()):
        variant, _, utility = token.rpartition(":")
        important = utility.startswith("!")
        utility = utility.lstrip("!")
        group = _class_group(utility)
        prefix = f"{variant}:{'!' if important else ''}"
        key = prefix + (group if group else f"={utility}")
        if key in seen:
            continue
        seen.add(key)
        for covered in _CONFLICTS.get(group or "", ()):
            seen.add(prefix + covered)
        kept.append(token)
    return " ".join(reversed(kept))


def cn(*inputs: ClassValue) -> str:
    """Combine class values and merge conflicting Tailwind utilities."""
    return tw_merge(clsx(*inputs))


# ─────────────────────────────────────────────────────────────────────
# FORMATTING / FAKE DATA
# ─────────────────────────────────────────────────────────────────────

def format_number(value: float) -> str:
    """Format as US dollars, e.g. 1234.5 -> "$1,234.50"."""
    if math.isnan(value):
        return "$NaN"
    sign = "-" if Decimal(value).is_signed() else ""
    if math.isinf(value):
        return f"{sign}$∞"
    amount = abs(Decimal(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{sign}${amount:,.2f}"


def _utf16_code_units(text: str) -> Iterable[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def get_stock_price(name: str) -> float:
    """Deterministic fake price for a ticker symbol."""
    total = 0
    for code in _utf16_code_units(name):
        total = (total + code * 9999121) % 9999
    return total / 100
