class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    DOCUMENTS = V1 + "/documents"
    CITABLE_DOCUMENT = DOCUMENTS + "/{document_id}/citable"
    RUN_EXTRACTION = V1 + "/extractions/run"
    VALIDATE_CITATION = V1 + "/citations/validate"
    VALIDATE_CITATIONS_BATCH = V1 + "/citations/validate-batch"
    SUGGEST_CITATIONS = V1 + "/citations/suggest"
    REVALIDATION_RECOMMENDATIONS = V1 + "/citations/recommendations"


# Consensus cut-offs that are part of the algorithm, not configuration.
HIGH_AGREEMENT_LEVEL = 80.0
SPLIT_VOTE_LEVEL = 60.0
CONFIDENCE_VARIANCE_LIMIT = 400.0
MAX_DISTINCT_VALUES = 2
HEADING_FONT_SIZE = 14.0
