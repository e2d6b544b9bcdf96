# WORKFLOW: Prompt templates sent to the OCR and extraction oracles.
# Used by: services/oracles.py, etl/pipeline.py (page instructions)
#
# Tariff tables are printed in French; labels must be returned verbatim.

TARIFF_PAGE_PROMPT = """
You are an OCR specialist for national customs tariff schedules.
This page belongs to an import duty tariff. Labels are in French and must be copied verbatim.

TABLE LAYOUT:
- CODIFICATION: full code in one column, e.g. "0303.14 00 00"
  (4-digit heading . 2-digit subheading, 2-digit extension, 2-digit national extension)
- DESIGNATION DES PRODUITS: French product label
- DROITS: duty rate as a number (10 means 10%)
- UNITE: u, kg, l, m, m2, ...

RULES:
1. Keep leading dashes ("– – –") in labels; they mark the hierarchy level.
2. Short codes such as "10" or "15 00" under a parent code are sub-codes; keep them as printed.
3. Copy duty rates exactly as printed, including "-".
4. Keep restriction notes such as (a), (b), (1).

OUTPUT: one table line per row, fields separated by " | ":
CODIFICATION | DESIGNATION | DROIT | UNITE

Example:
0303.14 00 00 | – – Truites (Salmo trutta...) | 10 | kg
""".strip()

PAGE_INSTRUCTION_TEMPLATE = "{prompt}\n\n[PAGE {page}/{total}]"

PAGE_RANGE_INSTRUCTION_TEMPLATE = "{prompt}\n\n[PAGES {first}-{last}/{total}] Transcribe only these pages."

CODE_EXTRACTION_SYSTEM_PROMPT = """
You extract tariff codes from OCR text of a national customs tariff.

CODE STRUCTURE:
- "0303.14 00 00" -> code_10 = "0303140000"
- "0302.74 00" -> code_10 = "0302740000" (pad with zeros)
- "15 00" under parent "0301.91" -> code_10_reconstructed = "0301911500", parent_code = "0301.91"

RULES:
1. Remove dots and spaces from codes; a valid code_10 has exactly 10 digits and a chapter from 01 to 99.
2. Sub-codes inherit the prefix of their parent code; set is_subcode and parent_code.
3. Keep leading dashes in label_fr.
4. Report droit exactly as printed; use null when the row has no rate.
5. Valid units: u, kg, l, m, m2, m3, t, g, pair/paire, 1000u.

Extract EVERY code line, including partial ones, and answer with JSON only.
""".strip()

CODE_EXTRACTION_USER_TEMPLATE = """
Extract all tariff codes from this text (chunk {chunk}):

{text}
""".strip()
