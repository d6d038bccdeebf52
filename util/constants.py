class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    UPLOAD = V1 + "/upload"
    ANALYZE_PDF = V1 + "/analyze-pdf"
    JOB_STATUS = V1 + "/job-status/{job_id}"
    CANCEL_JOB = V1 + "/job-status/{job_id}/cancel"
    LECTURE_CONTENT = V1 + "/lecture-content/{lecture_id}"


class Messages:
    QUEUED = "Your request is in the queue."
    COMPLETED = "Content generated successfully!"
    CANCELLED = "Job cancelled"


# Joins extracted texts of a multi-document job.
DOCUMENT_SEPARATOR = "\n\n--- Next Document ---\n\n"
