"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- vin: Check character, assembly and validation of VINs
- sequences: Per-prefix sequence stores (local file, Redis) and backend selection
- batch: Batch generation tying a quantity to allocated sequence numbers
- templates: Injection of generated VINs into customs XML documents and exports
"""
