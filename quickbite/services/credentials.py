"""
Salted scrypt hashes for the approved-staff credential table.

Parameters match the hashes already stored in approved_staff
(N=16384, r=8, p=1, 64-byte key, 16-byte hex salt) so existing rows
keep verifying.
"""
import hashlib
import hmac
import secrets

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64


def _scrypt_hex(password, salt):
    return hashlib.scrypt(
        str(password).encode('utf-8'),
        salt=str(salt).encode('utf-8'),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    ).hex()


def hash_password(password):
    """Return a (salt, hash) pair for the given password"""
    salt = secrets.token_hex(16)
    return salt, _scrypt_hex(password, salt)


def random_password_hash():
    """Hash for a password nobody knows"""
    return hash_password(secrets.token_hex(32))


def verify_password(password, salt, expected_hash):
    if not salt or not expected_hash:
        return False
    return hmac.compare_digest(_scrypt_hex(password, salt), str(expected_hash))
