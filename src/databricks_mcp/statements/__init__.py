"""SQL statement execution: warehouse selection, submission, polling and result assembly."""
