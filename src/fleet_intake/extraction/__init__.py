"""Candidate extraction from document text."""

from fleet_intake.extraction.base import CandidateExtractor
from fleet_intake.extraction.openai_candidate import OpenAICandidateExtractor

__all__ = ["CandidateExtractor", "OpenAICandidateExtractor"]
