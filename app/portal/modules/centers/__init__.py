"""
Centers and departments: organisational units that coordinators own and
lecturers are assigned to.
"""
