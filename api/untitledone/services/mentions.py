"""@mention parsing for comment bodies."""

import re

# "@" at the start of the text or after whitespace, then a username.
MENTION_PATTERN = re.compile(r"(?:^|(?<=\s))@([A-Za-z0-9_-]+)")


def parse_mentions(text: str | None) -> list[str]:
    """
    Extract mentioned usernames from text.

    Usernames are lowercased and de-duplicated, keeping the order of first
    occurrence. Email addresses such as ``a@b.com`` are not mentions because
    the ``@`` is not preceded by whitespace.
    """
    if not text:
        return []

    seen: set[str] = set()
    usernames: list[str] = []
    for match in MENTION_PATTERN.finditer(text):
        username = match.group(1).lower()
        if username not in seen:
            seen.add(username)
            usernames.append(username)
    return usernames


def get_new_mentions(current_text: str | None, previous_text: str | None) -> list[str]:
    """Usernames mentioned in ``current_text`` but not in ``previous_text``."""
    previous = set(parse_mentions(previous_text))
    return [username for username in parse_mentions(current_text) if username not in previous]
