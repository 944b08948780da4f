"""Business logic services.

The core components (provider registry, license vault, token authority)
and the primitives they share (signature codec, cache, crypto, flags).
Route handlers reach them through ``licensor.context.LicenseServer``.
"""
