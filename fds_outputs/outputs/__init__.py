"""Access to the companion files a manifest catalogs.

WHY: Most post-processing starts from a manifest and wants one column
of one companion CSV table (heat release rate over time, a device
reading). These helpers do the path resolution and column extraction.

HOW: csv_table.py reads the two-header-row CSV layout with pandas;
facade.py ties a parsed manifest to its directory and exposes lookups
by catalog type tag.
"""
