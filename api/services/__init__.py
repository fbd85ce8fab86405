"""Service layer for certificate publishing.

Services encapsulate the publishing workflow, keeping routes thin and focused
on HTTP handling:
- blob_service: durable artifact storage and template downloads
- catalog_service: asset registration in the remote catalog
- certificates_service: the render -> publish -> register pipeline

Layer hierarchy:
    Routes (HTTP) -> Services (Pipeline) -> Rendering (Pillow / CairoSVG)

Services should NOT know about HTTP request/response details; they raise
core.exceptions errors and routes do the conversion.
"""
