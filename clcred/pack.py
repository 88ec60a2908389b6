""" Adds serialization support.

This module adds 'to_bytes' and 'from_bytes' to the transmissible clcred data
classes: schemas, public keys, claim requests, claims and proofs. Furthermore,
'packb' and 'unpackb' enable serialization of clcred and petlib classes with
msgpack protocol.

Commitment phase classes (init proofs) and the issuer's secret key are not
registered: they never leave their owner.

Example:
    >>> key = SchemaKey("degree", "1.0", "issuer1")
    >>> unpackb(packb([key, Bn(42)])) == [key, Bn(42)]
    True
"""

import msgpack
import petlib.pack
from petlib.bn import Bn

from . import datatypes
from .datatypes import SchemaKey

COUNTER_BASE = 20
_pack_reg = dict()


def packb(obj):
    """packs a serializable object with msgpack"""
    return msgpack.packb(obj, default=_default, use_bin_type=True)


def unpackb(data):
    """unpacks a serialized object with msgpack"""
    return msgpack.unpackb(data, ext_hook=petlib.pack.ext_hook, raw=False)


def _default(obj):
    # check exact type to prevent calling parent's packing when the child has
    # defined a packer.
    if type(obj) in _pack_reg:
        num, enc = _pack_reg[type(obj)]
        return msgpack.ExtType(num, enc(obj))

    return petlib.pack.default(obj)


def add_msgpack_support_slots(cls, ext, add_cls_methods=True):
    """Adds serialization support to a slotted class.

    Enables packing and unpacking with msgpack with 'pack.packb' and
    'pack.unpackb' methods.

    If add_cls_methods then adds methods:
        bytes   <- obj.to_bytes()
        obj     <- cls.from_bytes(bytes)

    Frozen classes are supported: decoding bypasses their __setattr__.

    Args:
        cls: class
        ext: an unique code for the msgpack's Ext hook
    """
    def enc(obj):
        return packb({key: getattr(obj, key) for key in obj.__slots__ if key != "__weakref__"})

    def dec(data):
        obj = cls.__new__(cls)
        for key, value in unpackb(data).items():
            object.__setattr__(obj, key, value)
        return obj

    if add_cls_methods:
        cls.to_bytes = enc
        cls.from_bytes = staticmethod(dec)

    _pack_reg[cls] = (ext, enc)
    petlib.pack.register_coders(cls, ext, enc, dec)


def add_msgpack_support_set(cls, ext):
    """Packs a set type as a sorted list of its elements."""
    def enc(obj):
        return packb(sorted(obj))

    def dec(data):
        return cls(unpackb(data))

    _pack_reg[cls] = (ext, enc)
    petlib.pack.register_coders(cls, ext, enc, dec)


def register_all_classes():
    add_msgpack_support_set(set, COUNTER_BASE+1)
    add_msgpack_support_set(frozenset, COUNTER_BASE+2)

    # schema and keys
    add_msgpack_support_slots(datatypes.SchemaKey, COUNTER_BASE+3)
    add_msgpack_support_slots(datatypes.Schema, COUNTER_BASE+4)
    add_msgpack_support_slots(datatypes.PublicKey, COUNTER_BASE+5)

    # issuance
    add_msgpack_support_slots(datatypes.ClaimRequest, COUNTER_BASE+6)
    add_msgpack_support_slots(datatypes.PrimaryClaim, COUNTER_BASE+7)
    add_msgpack_support_slots(datatypes.Claims, COUNTER_BASE+8)

    # proof request and proofs
    add_msgpack_support_slots(datatypes.Predicate, COUNTER_BASE+9)
    add_msgpack_support_slots(datatypes.ProofInput, COUNTER_BASE+10)
    add_msgpack_support_slots(datatypes.PrimaryEqualProof, COUNTER_BASE+11)
    add_msgpack_support_slots(datatypes.PrimaryPredicateGEProof, COUNTER_BASE+12)
    add_msgpack_support_slots(datatypes.PrimaryProof, COUNTER_BASE+13)
    add_msgpack_support_slots(datatypes.Proof, COUNTER_BASE+14)
    add_msgpack_support_slots(datatypes.FullProof, COUNTER_BASE+15)

register_all_classes()


def main():
    import doctest
    doctest.testmod(verbose=True)

if __name__ == '__main__':
    main()
