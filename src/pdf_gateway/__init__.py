"""PDF storage gateway: upload, stream, list, sign and delete PDFs held in S3."""
