# topicsweep/messages/topic_messages.py

# ✅ Positive
TOPIC_COUNT_SELECTED = "Topic count selected."
TOPIC_COUNT_SELECTED_PARTIAL = "Topic count selected; some candidates failed or were not evaluated."
TOPIC_MODEL_FITTED = "Topic model fitted."

# ❌ Errors
EMPTY_CORPUS = "The documents do not yield a usable document-term matrix."
TOO_MANY_DOCUMENTS = "Too many documents for a single request."
DOC_IDS_MISMATCH = "doc_ids must have one entry per document."
HEADINGS_MISMATCH = "headings must have one entry per document."
INVALID_CANDIDATE = "Invalid candidate topic count."
NO_VIABLE_CANDIDATE = "No candidate topic count could be scored."
MODEL_FIT_FAILED = "Topic model fit failed."
SELECTION_FAILED = "Topic count selection failed due to internal server error."
