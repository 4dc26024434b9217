"""
Prime field arithmetic for SEC1 point decompression.

NOT constant time. Only ever call these on public values (curve
constants, public x coordinates). Secret scalars go through the
cryptography backend instead.
"""

from typing import Tuple

from enclavebox.errors import UnsupportedModulus, NoSquareRootExists


def mod_pow(base: int, exponent: int, modulus: int) -> int:
    """Modular exponentiation by square-and-multiply."""
    if modulus < 1:
        raise ValueError("Modulus must be positive")
    if exponent < 0:
        raise ValueError("Negative exponents are not supported")
    if modulus == 1:
        return 0

    result = 1
    base %= modulus
    while exponent:
        if exponent & 1:
            result = (result * base) % modulus
        base = (base * base) % modulus
        exponent >>= 1
    return result


def mod_sqrt(a: int, p: int) -> int:
    """
    Square root of a modulo a prime p with p = 3 (mod 4).

    Computes a^((p+1)/4) mod p and checks the result before returning it,
    so a non-residue raises instead of yielding a wrong root.
    """
    if p % 4 != 3:
        raise UnsupportedModulus(f"Modulus must be 3 mod 4, got {p % 4} mod 4")

    a %= p
    root = mod_pow(a, (p + 1) // 4, p)
    if (root * root) % p != a:
        raise NoSquareRootExists()
    return root


def mod_inverse(a: int, m: int) -> int:
    """Modular multiplicative inverse using extended Euclidean algorithm."""
    a %= m
    g, x, _ = _extended_gcd(a, m)
    if g != 1:
        raise ValueError("Modular inverse does not exist")
    return x % m


def _extended_gcd(a: int, b: int) -> Tuple[int, int, int]:
    old_r, r = a, b
    old_x, x = 1, 0
    old_y, y = 0, 1
    while r:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_x, x = x, old_x - q * x
        old_y, y = y, old_y - q * y
    return old_r, old_x, old_y
