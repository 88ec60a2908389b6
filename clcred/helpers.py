"""
Big number utilities on top of petlib.

The group order of an issuer key is secret, so exponents are never reduced.
Exponents may be negative (e.g. inverse powers in the verifier); mod_pow
handles them by inverting the base.

Example:
    >>> n = Bn(35)
    >>> mod_pow(Bn(2), Bn(-1), n)
    18
    >>> four_squares(15)
    [3, 2, 1, 1]
"""

from hashlib import sha256
from math import isqrt
from typing import List, Union

from petlib.bn import Bn

from .errors import CryptoArithmeticError, CryptoInvalidData


def bn_rand(bits: int) -> Bn:
    """A random number in [0, 2^bits)."""
    return Bn(2).pow(bits).random()


def bn_from_int(value: int) -> Bn:
    """Converts a python integer of any size to Bn."""
    return Bn.from_decimal(str(value))


def mod_pow(base: Bn, exp: Bn, modulus: Bn) -> Bn:
    try:
        if exp < 0:
            return base.mod_inverse(modulus).mod_pow(-exp, modulus)
        return base.mod_pow(exp, modulus)
    except Exception as e:
        raise CryptoArithmeticError(f"Modular exponentiation failed: {e}") from e


def mod_inverse(value: Bn, modulus: Bn) -> Bn:
    try:
        return value.mod_inverse(modulus)
    except Exception as e:
        raise CryptoArithmeticError(f"Value is not invertible: {e}") from e


def mod_div(a: Bn, b: Bn, modulus: Bn) -> Bn:
    """a * b^-1 mod modulus"""
    return a.mod_mul(mod_inverse(b, modulus), modulus)


def random_qr(n: Bn) -> Bn:
    """A random quadratic residue modulo n."""
    x = n.random()
    return x.mod_mul(x, n)


def generate_safe_prime(bits: int) -> Bn:
    try:
        return Bn.get_prime(bits, safe=1)
    except Exception as e:
        raise CryptoArithmeticError(f"Prime generation failed: {e}") from e


def generate_prime_in_range(start: Bn, end: Bn) -> Bn:
    """A random prime in [start, end)."""
    if end <= start:
        raise CryptoInvalidData("Empty range for prime generation.")
    while True:
        candidate = start + (end - start).random()
        if candidate.is_prime():
            return candidate


def encode_attribute(value: Union[str, int], encode: bool) -> Bn:
    """Integer encoding of an attribute value.

    Args:
        value: the raw attribute value.
        encode: if true the value is hashed with SHA-256, otherwise it must be
            a decimal integer and is used as is.
    Raises:
        CryptoInvalidData: value is not an integer and encode is false.
    """
    if encode:
        return Bn.from_binary(sha256(str(value).encode("utf8")).digest())
    try:
        return Bn.from_decimal(str(value))
    except Exception as e:
        raise CryptoInvalidData(f"Attribute value {value!r} is not an integer.") from e


# Below this bound four_squares searches exhaustively.
_SEARCH_BOUND = 2 ** 32


def _search_four_squares(n: int) -> List[int]:
    for a in range(isqrt(n), -1, -1):
        rem_a = n - a * a
        if 3 * a * a < rem_a:
            break
        for b in range(min(a, isqrt(rem_a)), -1, -1):
            rem_b = rem_a - b * b
            if 2 * b * b < rem_b:
                break
            for c in range(min(b, isqrt(rem_b)), -1, -1):
                rem_c = rem_b - c * c
                if c * c < rem_c:
                    break
                d = isqrt(rem_c)
                if d * d == rem_c:
                    return [a, b, c, d]

    raise CryptoArithmeticError(f"No four squares decomposition found for {n}.")


def _random_below(bound: int) -> int:
    return int(bn_from_int(bound).random())


def _two_squares(p: int) -> List[int]:
    """[c, d] with c^2 + d^2 == p, for a prime p = 1 mod 4."""
    p_bn = bn_from_int(p)
    exp = bn_from_int((p - 1) // 4)
    while True:
        root = int(bn_from_int(_random_below(p - 2) + 2).mod_pow(exp, p_bn))
        if root * root % p == p - 1:
            break

    # Hermite-Serret: Euclid on (p, sqrt(-1)) until the remainder drops below sqrt(p)
    limit = isqrt(p)
    a, b = p, min(root, p - root)
    while b > limit:
        a, b = b, a % b
    c = b
    d = isqrt(p - c * c)
    if c * c + d * d != p:
        raise CryptoArithmeticError(f"Two squares decomposition of {p} failed.")
    return [c, d]


def four_squares(delta: int) -> List[int]:
    """Lagrange decomposition: [a, b, c, d] with a^2 + b^2 + c^2 + d^2 = delta
    and a >= b >= c >= d >= 0.

    Small values are searched exhaustively. Larger ones use the randomized
    Rabin-Shallit method: random a, b such that delta - a^2 - b^2 is a prime
    p = 1 mod 4, which is then split into two squares.

    Raises:
        CryptoInvalidData: delta is negative.
    """
    if delta < 0:
        raise CryptoInvalidData(f"Four squares decomposition of a negative number ({delta}).")

    # delta = 4^k * m, a decomposition of m scales by 2^k
    k = 0
    m = delta
    while m and m % 4 == 0:
        m //= 4
        k += 1

    if m < _SEARCH_BOUND:
        squares = _search_four_squares(m)
    else:
        # parity of a and b such that p = m - a^2 - b^2 = 1 mod 4
        parities = {1: (0, 0), 2: (1, 0), 3: (1, 1)}[m % 4]
        bound = isqrt(m // 2) // 2
        while True:
            a = 2 * _random_below(bound) + parities[0]
            b = 2 * _random_below(bound) + parities[1]
            p = m - a * a - b * b
            if p > 1 and bn_from_int(p).is_prime():
                break
        squares = [a, b] + _two_squares(p)

    return sorted((x << k for x in squares), reverse=True)


def main():
    import doctest
    doctest.testmod(verbose=True)


if __name__ == "__main__":
    main()
