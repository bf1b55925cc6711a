"""
Loader App - Installed Apps Log Loader

Responsibilities:
- Discover gzip log files matching a glob pattern (skipping already-marked files)
- Parse each tab-separated line into an AppsInstalled record
- Encode records as UserApps protobuf payloads
- Write payloads to the Redis store for the record's device type, with bounded retry
- Gate each file on its failure rate (1% by default)
- Mark processed files by prefixing their name with "."

Input line format:
- <dev_type>\t<dev_id>\t<lat>\t<lon>\t<app1>,<app2>,...

Outputs:
- Redis keys "<dev_type>:<dev_id>" holding serialized UserApps messages
"""
