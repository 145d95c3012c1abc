"""Process runtime for the UHRP storage host."""
