"""Mintforge: resumable collection registry upload and verification.

Writes a collection's item lines into an on-ledger registry in confirmed
batches, records progress in a local cache so any run can be resumed,
and verifies the stored records in a separate, re-runnable pass.
"""

__version__ = "0.1.0"
__description__ = "Resumable collection registry upload and verification"

from mintforge.core.pipeline import MintPipeline, upload, verify

__all__ = ["MintPipeline", "upload", "verify", "__version__"]
