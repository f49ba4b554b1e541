from wsi.domain.pipeline.service.scheduler import PipelineScheduler

__all__ = ["PipelineScheduler"]
