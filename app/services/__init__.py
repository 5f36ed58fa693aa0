"""
Services Layer
Facades and helpers used primarily by routes.

Services should:
- Keep business rules in the domain layer and only orchestrate it
- Shape domain results into plain dictionaries for the presentation layer
- Be stateless apart from the per-application wiring
"""
