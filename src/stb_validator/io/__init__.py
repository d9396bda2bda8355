"""Document I/O: ST-Bridge XML and JSON snapshots."""
