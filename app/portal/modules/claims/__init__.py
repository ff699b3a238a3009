"""
Claims module.

- Lecturers submit claims into the center they are assigned to (status PENDING)
- The center's coordinator approves or rejects a claim exactly once
- Every transition is recorded to the append-only audit trail
"""
