"""Pattern-based rewriting of links inside HTML responses.

Two independent passes run over the text: one for ``href``/``src``/``action``
attributes and one for CSS ``url()`` references. Every reference that
resolves is replaced by a link back into the proxy; anything that does not
resolve (or uses a scheme such as ``data:``) is left exactly as found.
"""

import re
from dataclasses import dataclass

from core.exceptions import ResolutionError
from core.urls import encode_proxy_url, resolve

# name="value" or name='value'; the value never contains either quote
ATTRIBUTE_PATTERN = re.compile(r"""(href|src|action)=(["'])([^"']+)\2""")

# url(value), url("value") or url('value'), except data: URIs
CSS_URL_PATTERN = re.compile(r"""url\((["']?)(?!data:)([^)"']+)\1\)""")


@dataclass(frozen=True)
class RewriteMatch:
    """A single rewritable reference found in the text."""

    literal: str
    attribute: str | None
    quote: str
    url: str

    @classmethod
    def from_attribute(cls, match: re.Match[str]) -> "RewriteMatch":
        return cls(match.group(0), match.group(1), match.group(2), match.group(3))

    @classmethod
    def from_css(cls, match: re.Match[str]) -> "RewriteMatch":
        return cls(match.group(0), None, match.group(1), match.group(2))

    def render(self, proxy_url: str) -> str:
        """Rebuild the literal around a new URL, keeping the quote style."""
        if self.attribute is None:
            return f"url({self.quote}{proxy_url}{self.quote})"
        return f"{self.attribute}={self.quote}{proxy_url}{self.quote}"


class ContentRewriter:
    """Rewrite embedded references so they re-enter the proxy."""

    def rewrite(self, html: str, base_url: str, prefix: str) -> str:
        """Run the attribute pass and the CSS url() pass over ``html``."""
        html = ATTRIBUTE_PATTERN.sub(
            lambda m: self._substitute(RewriteMatch.from_attribute(m), base_url, prefix),
            html,
        )
        return CSS_URL_PATTERN.sub(
            lambda m: self._substitute(RewriteMatch.from_css(m), base_url, prefix),
            html,
        )

    @staticmethod
    def _substitute(match: RewriteMatch, base_url: str, prefix: str) -> str:
        try:
            resolved = resolve(base_url, match.url)
        except ResolutionError:
            return match.literal
        if resolved is None:
            return match.literal
        return match.render(encode_proxy_url(prefix, resolved))
