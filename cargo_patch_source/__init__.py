"""cargo-patch-source: temporarily redirect Cargo dependencies to another source."""

from cargo_patch_source.exceptions import PatchError
from cargo_patch_source.models import GitReference, PatchSource
from cargo_patch_source.patcher import apply_patches, remove_patches

__all__ = ["GitReference", "PatchError", "PatchSource", "apply_patches", "remove_patches"]
