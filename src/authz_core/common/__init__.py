"""Cross-cutting helpers: logging, schemas, HTTP error mapping."""
