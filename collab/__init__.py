"""Event workspace collaboration core: database models, repositories, logging."""
