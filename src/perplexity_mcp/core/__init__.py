"""Request validation, body building, response rendering and the operations layer."""
