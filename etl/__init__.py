# WORKFLOW: ETL package for tariff code extraction from scanned documents.
# Used by: Extraction endpoints, batch callers
# Modules include:
# 1. strategy.py - Estimate page count and plan OCR units
# 2. page_extraction.py - Bounded-concurrency OCR over units
# 3. aggregator.py - Join page texts with page delimiters
# 4. chunker.py - Bounded overlapping chunks
# 5. code_extraction.py - Structured code extraction per chunk
# 6. normalizer.py / duty_parser.py - Full-length codes and numeric duty rates
# 7. validators.py - Structural validation
# 8. deduplicator.py - One record per code_10
# 9. quality.py - Heuristic quality metrics
# 10. pipeline.py - End-to-end orchestration
# 11. export.py - Clean table export
#
# ETL flow: Document/page images -> OCR -> Text -> Chunks -> Candidates -> Validated -> Deduplicated -> Result
# Every stage degrades per unit so one bad page or chunk never fails the whole run.

"""
ETL package for tariff code extraction.
"""
