"""Snapshot dataset format: manifest, chunk files, verification, fixtures.

Public API:
    load_manifest, compute_manifest_sha256: dataset descriptor + identity
    verify_dataset, VerifyMode: structural / strict validation
    VerifyResult, VerifyError, DatasetStats: verification outcome
    generate_tiny_dataset: synthetic fixture for tests
"""

from snapbench.dataset.fixtures import generate_tiny_dataset
from snapbench.dataset.manifest import (
    Manifest,
    compute_manifest_sha256,
    load_manifest,
)
from snapbench.dataset.result import DatasetStats, VerifyError, VerifyResult
from snapbench.dataset.verifier import DatasetVerifier, VerifyMode, verify_dataset

__all__ = [
    "DatasetStats",
    "DatasetVerifier",
    "Manifest",
    "VerifyError",
    "VerifyMode",
    "VerifyResult",
    "compute_manifest_sha256",
    "generate_tiny_dataset",
    "load_manifest",
    "verify_dataset",
]
