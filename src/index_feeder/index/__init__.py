"""
Codecs and transport for the remote search index.

- types: field type <-> index type mapping
- xml_utils: escaping and tree-walking helpers
- schema_xml: schema descriptor reader/writer
- document_xml: update-message writer and reader
- transport: HTTP transport built on httpx
- collection: collection lifecycle administration
"""
