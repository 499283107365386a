"""Candidate evaluation and selection."""
from .evaluator import CandidateEvaluator
from .selector import CandidateSelector

__all__ = ["CandidateEvaluator", "CandidateSelector"]
