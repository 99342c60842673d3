"""
Todo service package.

Owns the task entity: persistence (``repository``), the look-aside cache
(``cache``), the orchestration that sequences the two (``service``) and the
HTTP surface (``main``).
"""
