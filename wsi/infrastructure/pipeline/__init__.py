from wsi.infrastructure.pipeline.di import RuntimeProvider

__all__ = ["RuntimeProvider"]
