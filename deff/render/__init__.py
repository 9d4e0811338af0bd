"""Layout, frame buffer and the pure frame renderer.

Import ``deff.render.engine`` for ``render_frame``; this package module
stays import-free so geometry helpers can be used without the renderer.
"""
