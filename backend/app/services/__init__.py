"""
Person Registry Backend — Services Layer
==========================================

Service Inventory:
    - PersonService:    endpoint orchestration (validate → store files → statement)
    - PersonRepository: store adapter, one parameterized statement per operation
    - UploadService:    upload type/size checks, disk writes, orphan cleanup
"""
