"""
Human-readable text form of an uncertain value: ``"<mean> +/- <sigma>"``.

The uncertainty is written to two significant digits and the mean is rounded
to the same decimal place, so ``5.0 +/- 1.1`` rather than
``5.000000 +/- 1.118034``.
"""

import math
import re
from typing import List, Optional, Tuple

from .errors import FormatError

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?|[-+]?(?:nan|inf(?:inity)?)"
_UNCERTAIN_RE = re.compile(
    rf"\s*(?P<mean>{_NUMBER})\s*\+\s*/\s*-\s*(?P<sigma>{_NUMBER})"
    r"\s*(?:\[[^\]]*\])?\s*",
    re.IGNORECASE,
)


def int_percent(ratio: float) -> int:
    """Translate a floating point ratio to a rounded whole percentage."""
    return int(math.floor(ratio * 100.0 + 0.5))


def _fixed_digits(x: float, precision: int) -> str:
    # '#' keeps trailing zeros so 5.0 stays "5.0"; a bare trailing point is dropped
    text = f"{x:#.{precision}g}"
    if text.endswith("."):
        text = text[:-1]
    return text


def uncertain_print(mean: float, sigma: float) -> str:
    """
    Format ``mean +/- sigma`` with sigma rounded to 2 significant digits.

    Parameters
    ----------
    mean : float
        Central value.
    sigma : float
        Standard deviation. Zero, NaN and infinite sigmas, and NaN or
        infinite means, print both numbers with up to 6 significant digits.
    """
    mean = float(mean)
    sigma = float(sigma)
    if sigma == 0.0 or not math.isfinite(sigma) or not math.isfinite(mean):
        return f"{mean:g} +/- {abs(sigma):g}"

    sigma = abs(sigma)
    sigma_digits = 1 - int(math.floor(math.log10(sigma)))
    round_10_pow = 10.0 ** sigma_digits
    rounded = math.floor(sigma * round_10_pow + 0.5) / round_10_pow
    # rounding 0.996 up to 1.00 crosses a decade; keep two significant digits
    if 1 - int(math.floor(math.log10(rounded))) != sigma_digits:
        sigma_digits -= 1
        round_10_pow = 10.0 ** sigma_digits
        rounded = math.floor(rounded * round_10_pow + 0.5) / round_10_pow
    sigma = rounded

    mean = math.floor(mean * round_10_pow + 0.5) / round_10_pow
    if mean == 0.0:
        precision = sigma_digits + 1 if sigma_digits > 0 else 1
        mean = 0.0
    else:
        precision = int(math.floor(math.log10(abs(mean)))) + sigma_digits + 1
        if precision < 1:
            mean = 0.0
            precision = sigma_digits + 1 if sigma_digits > 0 else 1
    return f"{_fixed_digits(mean, precision)} +/- {_fixed_digits(sigma, 2)}"


def uncertain_read(text: str) -> Tuple[float, float]:
    """
    Parse ``"<mean> +/- <sigma>"`` into ``(mean, sigma)``.

    Whitespace between the ``+``, ``/`` and ``-`` tokens is allowed, as is a
    trailing ``[skew : kurtosis : m5]`` block written by ensemble values.

    Raises
    ------
    FormatError
        If the ``+ / -`` token sequence is not found between two numbers.
    """
    match = _UNCERTAIN_RE.fullmatch(text)
    if match is None:
        raise FormatError(
            f"illegal characters encountered in reading mean +/- sigma: {text!r}")
    return float(match.group("mean")), float(match.group("sigma"))


def render_source_budget(budget: List[dict], other: Optional[float] = None) -> str:
    """
    Text for ``print_uncertain_sources``: one ``"<source>: N%"`` line per row.

    ``other`` is the unexplained fraction of variance, shown last when given.
    """
    lines = [f"{row['source']}: {row['pct_contribution']}%" for row in budget]
    if other is not None:
        lines.append(f"other: {int_percent(other)}%")
    return "\n".join(lines) + "\n\n"
