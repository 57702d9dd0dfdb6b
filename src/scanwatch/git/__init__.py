"""Local git state: head pointer, branch commit and ancestry."""

from .reader import RepositoryReader, parse_head_ref, parse_origin

__all__ = ["RepositoryReader", "parse_head_ref", "parse_origin"]
