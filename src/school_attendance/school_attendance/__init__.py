"""School attendance client package.

Organized by feature modules (roster, records, attendance) with a thin Flask
controller layer over service/repository layers. The attendance module holds
the sheet workflow: reconcile roster with any stored record, track edits, save
as create or update, and guard exits while edits are unsaved.
"""
