"""Value normalizers shared by entity transforms."""

import re
import unicodedata
import zlib
from typing import Any, Dict, List, Optional, Sequence

TAG_COLORS = [
    "#ef4444", "#f97316", "#f59e0b", "#eab308", "#84cc16", "#22c55e", "#14b8a6",
    "#06b6d4", "#3b82f6", "#6366f1", "#8b5cf6", "#a855f7", "#d946ef", "#ec4899",
]

COLOR_RANGES = {
    "d-e-f": ["D", "E", "F", "D-E", "E-F", "D-E-F"],
    "g-h-i-j": ["G", "H", "I", "J", "G-H", "H-I", "I-J", "G-H-I-J"],
    "k-l-m": ["K", "L", "M", "K-L", "L-M", "K-L-M"],
    "n-to-z": list("NOPQRSTUVWXYZ") + ["ST", "N-Z", "N TO Z"],
    "fancy": ["FANCY"],
}

CLARITY_RANGES = {
    "fl-if": ["FL", "IF", "FL-IF", "FLAWLESS", "INTERNALLY FLAWLESS"],
    "vvs1-vvs2": ["VVS1", "VVS2", "VVS1-VVS2", "VVS"],
    "vs1-vs2": ["VS1", "VS2", "VS1-VS2", "VS"],
    "si1-si2": ["SI1", "SI2", "SI1-SI2", "SI"],
    "i1-i3": ["I1", "I2", "I3", "I1-I3", "I"],
}

# Carat bounds, inclusive. Overlapping buckets exist in the legacy option
# lists; the first bucket present in the options wins.
WEIGHT_RANGES = [
    ("01-17", 0.01, 0.17),
    ("18-22", 0.18, 0.22),
    ("23-29", 0.23, 0.29),
    ("30-39", 0.30, 0.39),
    ("40-49", 0.40, 0.49),
    ("50-69", 0.50, 0.69),
    ("51-75", 0.51, 0.75),
    ("70-89", 0.70, 0.89),
    ("76-99", 0.76, 0.99),
    ("90-99", 0.90, 0.99),
    ("100-149", 1.00, 1.49),
    ("150-199", 1.50, 1.99),
    ("200-299", 2.00, 2.99),
    ("300-399", 3.00, 3.99),
    ("400-499", 4.00, 4.99),
    ("500-599", 5.00, 5.99),
    ("600-999", 6.00, 9.99),
    ("1000+", 10.00, 999.99),
]


def slugify(value: Any, separator: str = "-") -> str:
    """Lowercase ASCII slug: "Natural Diamond" -> "natural-diamond"."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value)).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-z0-9]+", separator, text.lower())
    return text.strip(separator)


def digits_only(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def tag_color(name: str) -> str:
    """Stable palette color for a tag name."""
    return TAG_COLORS[zlib.crc32(name.encode("utf-8")) % len(TAG_COLORS)]


def vendor_code(name: str, length: int = 6) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", name).upper()[:length]


def _option_values(options: Sequence[Any]) -> List[str]:
    values = []
    for option in options:
        value = option.get("value") if isinstance(option, dict) else option
        if value:
            values.append(str(value))
    return values


def color_range(value: str, option_values: Sequence[str]) -> Optional[str]:
    upper = value.strip().upper()
    for range_value, colors in COLOR_RANGES.items():
        if upper in colors and range_value in option_values:
            return range_value
    slug = slugify(value)
    return slug if slug in option_values else None


def clarity_range(value: str, option_values: Sequence[str]) -> Optional[str]:
    upper = value.strip().upper()
    for range_value, clarities in CLARITY_RANGES.items():
        if upper in clarities and range_value in option_values:
            return range_value
    slug = slugify(value)
    return slug if slug in option_values else None


def weight_range(value: str, option_values: Sequence[str]) -> Optional[str]:
    """Bucket a carat weight such as "0.63 carat" or "1.2ct"."""
    match = re.match(r"^\s*(\d+(?:\.\d+)?|\.\d+)", value)
    if not match:
        return None
    weight = float(match.group(1))
    for range_value, low, high in WEIGHT_RANGES:
        if low <= weight <= high and range_value in option_values:
            return range_value
    return None


def _known_attribute(value: str, attribute: str, option_values: Sequence[str]) -> Optional[str]:
    lower = value.lower()
    slug = slugify(value)

    if "cert_type" in attribute and lower in option_values:
        return lower
    if "stone_type" in attribute and slug in option_values:
        return slug
    if "range" not in attribute and ("color" in attribute or "clarity" in attribute):
        if lower in option_values:
            return lower
    if "color_range" in attribute:
        found = color_range(value, option_values)
        if found:
            return found
    if "clarity_range" in attribute:
        found = clarity_range(value, option_values)
        if found:
            return found
    if ("weight" in attribute and "range" in attribute) or attribute == "main_stone_weight":
        found = weight_range(value, option_values)
        if found:
            return found
    if any(name in attribute for name in ("cut", "polish", "symmetry")) and slug in option_values:
        return slug
    if attribute == "includes":
        if slug in option_values:
            return slug
        if lower in option_values:
            return lower
    return None


def match_option(value: Any, attribute: str, options: Sequence[Any]) -> Optional[str]:
    """
    Match a free-text legacy attribute value to a select option.

    Tries, in order: exact value, case-insensitive value, slug, option label,
    then attribute-specific rules (color/clarity/weight ranges, cut grades).

    Args:
        value: Legacy value, e.g. "VS2" or "0.63 carat"
        attribute: Attribute name, e.g. "clarity_range"
        options: Option values, or dicts with "value" and "label"

    Returns:
        The matching option value, or None if nothing matched
    """
    if value is None or value == "":
        return None

    text = str(value).strip()
    attribute = attribute.lower()
    option_values = _option_values(options)

    if text in option_values:
        return text

    lower = text.lower()
    for option_value in option_values:
        if option_value.lower() == lower:
            return option_value

    slug = slugify(text)
    if slug in option_values:
        return slug

    for option in options:
        if not isinstance(option, dict):
            continue
        label = str(option.get("label") or "")
        if label and (label.lower() == lower or slugify(label) == slug):
            return option.get("value") or text

    return _known_attribute(text, attribute, option_values)


def default_options(attribute: str) -> List[Dict[str, str]]:
    """Built-in option lists for the jewelry range attributes."""
    attribute = attribute.lower()
    if "color_range" in attribute:
        names = list(COLOR_RANGES)
    elif "clarity_range" in attribute:
        names = list(CLARITY_RANGES)
    elif ("weight" in attribute and "range" in attribute) or attribute == "main_stone_weight":
        names = [name for name, _, _ in WEIGHT_RANGES]
    else:
        return []
    return [{"value": name, "label": name.upper()} for name in names]
