from wsi.domain.pipeline.schedule.pipeline_schedule import PipelineSchedule

__all__ = ["PipelineSchedule"]
