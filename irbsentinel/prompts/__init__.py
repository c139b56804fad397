"""Prompt templates for the IRB reviewer panel."""

from .panel_prompt import ANSWER_FORMAT, PANEL_PREAMBLE, build_panel_prompt

__all__ = ["ANSWER_FORMAT", "PANEL_PREAMBLE", "build_panel_prompt"]
