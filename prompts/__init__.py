"""
Prompts package for Strady.
Contains the prompt texts used by the strategy explainer.
"""

import os
from typing import Dict

# Cache for loaded prompts
_prompt_cache: Dict[str, str] = {}


def load_prompt(filename: str) -> str:
    """
    Load a prompt from a text file.

    Args:
        filename: Name of the prompt file (e.g., 'strategy_system.txt')

    Returns:
        Prompt content as string
    """
    if filename in _prompt_cache:
        return _prompt_cache[filename]

    prompt_dir = os.path.dirname(os.path.abspath(__file__))
    filepath = os.path.join(prompt_dir, filename)

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read().strip()
            _prompt_cache[filename] = content
            return content
    except FileNotFoundError:
        raise FileNotFoundError(f"Prompt file not found: {filepath}")
    except Exception as e:
        raise RuntimeError(f"Error loading prompt file {filename}: {e}")


def get_strategy_system_prompt() -> str:
    """System prompt framing the model as a neutral options educator."""
    return load_prompt("strategy_system.txt")


def get_strategy_request(transactions: str) -> str:
    """
    Build the user request for a strategy explanation.

    Args:
        transactions: Natural-language list of the strategy's transactions
    """
    return load_prompt("strategy_request.txt").format(transactions=transactions)

