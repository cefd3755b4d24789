import pytest

from tests.oauth_helpers import generate_rsa_key


@pytest.fixture(scope="session")
def signing_key():
    return generate_rsa_key()


@pytest.fixture(scope="session")
def other_signing_key():
    return generate_rsa_key()
