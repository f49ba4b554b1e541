from wsi.domain.submission.service.submission import SubmissionService, SubmissionSummary

__all__ = ["SubmissionService", "SubmissionSummary"]
