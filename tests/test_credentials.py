from quickbite.services import credentials


def test_hash_and_verify():
    salt, password_hash = credentials.hash_password('burger-time')

    assert len(salt) == 32
    assert len(password_hash) == 128
    assert credentials.verify_password('burger-time', salt, password_hash)


def test_wrong_password_is_rejected():
    salt, password_hash = credentials.hash_password('burger-time')

    assert not credentials.verify_password('burger-tim3', salt, password_hash)


def test_salts_differ_between_hashes():
    first = credentials.hash_password('same')
    second = credentials.hash_password('same')

    assert first[0] != second[0]
    assert first[1] != second[1]


def test_missing_salt_or_hash_never_verifies():
    assert not credentials.verify_password('x', '', 'abc')
    assert not credentials.verify_password('x', 'abc', None)


def test_random_hash_does_not_match_empty_password():
    salt, password_hash = credentials.random_password_hash()

    assert not credentials.verify_password('', salt, password_hash)
