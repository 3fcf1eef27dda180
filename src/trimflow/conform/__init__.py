"""Conform stages: clip extraction and concatenation inside a temp workspace."""
from trimflow.conform.concat import build_concat_command, concatenate_clips, write_manifest
from trimflow.conform.extract import build_extract_command, extract_segments
from trimflow.conform.verify import verify_output
from trimflow.conform.workspace import Workspace

__all__ = [
    "Workspace",
    "build_concat_command",
    "build_extract_command",
    "concatenate_clips",
    "extract_segments",
    "verify_output",
    "write_manifest",
]
