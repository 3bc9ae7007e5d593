"""Free-text gem list parsing ("Diamond (2 carats), Ruby")"""
import re

from .generator import GemInput

GEM_PATTERN = re.compile(
    r'^\s*(?P<name>.+?)\s*\(\s*(?P<carats>\d+(?:\.\d+)?)\s*(?:carats?|cts?|ct)?\s*\)\s*$',
    re.IGNORECASE,
)


def parse_gem_text(text):
    """
    Parse a comma separated gem list.

    Entries shaped like "Name (N carats)" carry a carat weight; anything
    else is kept as a name-only gem. Blank entries are dropped.
    """
    gems = []
    for entry in (text or '').split(','):
        entry = entry.strip()
        if not entry:
            continue
        match = GEM_PATTERN.match(entry)
        if match:
            gems.append(GemInput(name=match.group('name').strip(), carats=float(match.group('carats'))))
        else:
            gems.append(GemInput(name=entry))
    return gems
