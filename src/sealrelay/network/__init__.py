"""HTTP access to the data source and the downstream sink."""
