"""Prompt templates for Sales Coach."""

from sales_coach.prompts.scoring_prompt import (
    PROMPT_VERSION,
    build_system_instruction,
    build_user_message,
)

__all__ = ["PROMPT_VERSION", "build_system_instruction", "build_user_message"]
