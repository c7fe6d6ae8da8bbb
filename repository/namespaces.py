# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "provenance"

DOCUMENTS: Final[str] = f"{ROOT}:documents"  # chunk set per document
EXTRACTIONS: Final[str] = f"{ROOT}:extractions"  # one record per extraction id
DOCUMENT_EXTRACTIONS: Final[str] = f"{DOCUMENTS}:extractions"  # id set per document
CONSENSUS: Final[str] = f"{ROOT}:consensus"  # hash field_name -> row per run
REVIEWS: Final[str] = f"{ROOT}:reviews"  # reviewer answers per run
