"""HMPI: Heavy Metal Pollution Index scoring for water-quality samples."""
