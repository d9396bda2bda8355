"""Validation passes for ST-Bridge documents.

Run in this order by ``engine.validate_stb_document``:
- structure: root element, version, required groups, node presence
- nodes: duplicate ids, coordinate values
- levels: story heights and names, axis distances
- elements: per-kind ids, section and node attributes, zero-length members
- references: node and section references resolve (optional)
- sections: cross-section dimensions (pluggable rule set)
- geometry: member length bounds (optional)
"""
