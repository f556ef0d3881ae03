"""
Interactive prompts.
"""

from gitplus.logger import console


def confirm(prompt: str, default: bool = False) -> bool:
    """
    Ask a yes/no question on the console.

    Empty input (or end of input) returns `default`; "y" or "yes" in any case
    returns True; anything else returns False.
    """
    suffix = "(Y/n)" if default else "(y/N)"
    try:
        answer = console.input(f"{prompt} {suffix}: ")
    except EOFError:
        return default

    answer = answer.strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")
