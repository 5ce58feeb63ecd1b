"""Wire and value models for the ws402 client."""
