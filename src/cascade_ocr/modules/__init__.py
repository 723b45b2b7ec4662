"""Pipeline stages: layout detection, cascade recognition, reading order."""
