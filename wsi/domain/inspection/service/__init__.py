from wsi.domain.inspection.service.inspection import InspectionService, InspectionSummary

__all__ = ["InspectionService", "InspectionSummary"]
