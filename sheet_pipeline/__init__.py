"""
Spreadsheet transformation pipeline.

Turns uploaded spreadsheets or JSON sheet definitions into a canonical
header/row model, re-numbers the identifier column (flat or grouped),
merges several sources into one workbook and lays it out for output.

Modules:
- reader.py: spreadsheet bytes -> raw grids (pandas)
- normalizer.py: raw grids -> headers + row mappings
- language.py: primary/secondary language classification
- reindexer.py: flat and grouped identifier re-numbering
- translator.py: bilingual header labels
- merger.py: multi-file and multi-shape JSON merging
- formatter.py: immutable styled cell grids
- serializer.py: workbook bytes and output file names
"""
