# Application routes live in v1/
