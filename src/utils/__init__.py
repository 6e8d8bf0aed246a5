from .masking import mask_token

__all__ = ["mask_token"]
