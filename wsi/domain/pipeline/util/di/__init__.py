from wsi.domain.pipeline.util.di.provider import PipelineProvider

__all__ = ["PipelineProvider"]
