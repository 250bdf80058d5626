"""Page Grade - explainable single-page quality audits."""
