"""Controlled vocabulary: verbs, roles and capability checks."""

from triplegraph.vocabulary.capabilities import CapabilityResolver
from triplegraph.vocabulary.loader import Vocabulary, load_vocabulary_file, parse_vocabulary
from triplegraph.vocabulary.roles import RoleRegistry
from triplegraph.vocabulary.verbs import VerbRegistry

__all__ = [
    "CapabilityResolver",
    "RoleRegistry",
    "VerbRegistry",
    "Vocabulary",
    "load_vocabulary_file",
    "parse_vocabulary",
]
