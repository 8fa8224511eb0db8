"""
Guide-building helpers.

Usage:
    from tests._support.guides import fence

    text = "# Setup\n\n" + fence("python", "print(1)", "independent")
"""

FENCE = "```"


def fence(language: str, body: str, info: str = "") -> str:
    """Render one fenced block (language tag plus optional info tokens)."""
    header = f"{language} {info}".strip()
    return f"{FENCE}{header}\n{body.rstrip()}\n{FENCE}\n"


def guide(title: str, *blocks: str) -> str:
    """A guide with one heading followed by ``blocks`` separated by prose."""
    parts = [f"# {title}\n"]
    for index, block in enumerate(blocks):
        parts.append(f"\nStep {index + 1}:\n\n{block}")
    return "".join(parts)
