"""CareHome facility platform: residents, staff, care records and messaging."""
