FAULT_MAPPING = dict(
    invalid_config="Invalid logging configuration: {error}",
    config_file_missing="Config file ({file_path}) does not exist.",
    write_failed="Failed to write log line: {error}",
)

FIELDS_HEADER = "Record fields (* = captured from the caller's stack frame):"

TOOL_DESCRIPTION = "fieldlog - pattern-based logging from named record fields"
