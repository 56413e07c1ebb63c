"""S3 access for the gateway--the object store facade and the CRUD operations built on it."""
