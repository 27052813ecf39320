"""Prompt loader utility for LLM interactions.

Loads prompts from YAML files in the prompts/ directory.
"""

from pathlib import Path
from typing import Any

import yaml
from loguru import logger


class PromptLoader:
    """Load and format prompts from YAML files."""

    def __init__(self, prompts_dir: Path | str = "prompts"):
        """Initialize prompt loader.

        Args:
            prompts_dir: Directory containing prompt YAML files
        """
        self.prompts_dir = Path(prompts_dir)
        if not self.prompts_dir.exists():
            raise FileNotFoundError(f"Prompts directory not found: {self.prompts_dir}")
        self._cache: dict[str, dict[str, str]] = {}

    def load_prompt(self, name: str) -> dict[str, str]:
        """Load a prompt template pair.

        Args:
            name: Prompt file stem (e.g., "trending_analysis")

        Returns:
            Dictionary with 'system_prompt' and 'user_prompt' keys

        Raises:
            FileNotFoundError: If prompt file doesn't exist
            ValueError: If prompt file is invalid
        """
        if name in self._cache:
            return self._cache[name]

        prompt_file = self.prompts_dir / f"{name}.yaml"

        if not prompt_file.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

        try:
            with open(prompt_file, encoding="utf-8") as f:
                prompt_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse prompt YAML: {e}") from e

        if not isinstance(prompt_data, dict):
            raise ValueError(f"Invalid prompt file format: {prompt_file}")

        if "system_prompt" not in prompt_data or "user_prompt" not in prompt_data:
            raise ValueError(
                f"Prompt file must contain 'system_prompt' and 'user_prompt': {prompt_file}"
            )

        logger.debug(f"Loaded prompt from {prompt_file}")
        self._cache[name] = {
            "system_prompt": prompt_data["system_prompt"].strip(),
            "user_prompt": prompt_data["user_prompt"].strip(),
        }
        return self._cache[name]

    def render(self, name: str, **kwargs: Any) -> tuple[str, str]:
        """Load and format both prompts with the same variables.

        Args:
            name: Prompt file stem
            **kwargs: Variables to substitute in both templates

        Returns:
            (system_prompt, user_prompt)
        """
        prompts = self.load_prompt(name)
        try:
            system = prompts["system_prompt"].format(**kwargs)
            user = prompts["user_prompt"].format(**kwargs)
        except KeyError as e:
            raise ValueError(f"Missing required prompt variable: {e}") from e

        logger.debug(f"Formatted prompt for {name} ({len(system) + len(user)} chars)")
        return system, user


# Singleton instance
_prompt_loader: PromptLoader | None = None


def get_prompt_loader() -> PromptLoader:
    """Get global PromptLoader instance.

    Returns:
        Singleton PromptLoader instance
    """
    global _prompt_loader
    if _prompt_loader is None:
        _prompt_loader = PromptLoader()
    return _prompt_loader
