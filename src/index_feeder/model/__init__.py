"""
In-memory record model.

- field: ``DataField``, ``FieldType`` and the reserved feature names
- bag: ``DataBag``, an ordered name-unique set of fields
- document: ``Document``, ``Relationship`` and the ``Schema`` view
- table: ``DataTable``, rows of values sharing one column bag
"""
