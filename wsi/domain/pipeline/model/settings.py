from wsi.domain.shared.model.value import ValueObject


class PipelineSettings(ValueObject):
    """Snapshot of tenant settings, read once per run and passed to each stage."""

    enabled: bool = False
    requests_per_day: int = 0  # Global cap across all accounts per quota period
