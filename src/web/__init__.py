"""HTTP routes and response presenters."""
