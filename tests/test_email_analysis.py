from lead_discovery.email_analysis import (
    generate_possible_emails,
    is_placeholder_email,
    is_valid_business_email,
    parse_email_details,
    validate_email_pattern,
)


def test_validate_email_pattern_prefers_first_dot_last() -> None:
    assert validate_email_pattern("john.doe@acme.com") == 90
    assert validate_email_pattern("john@acme.com") == 85
    assert validate_email_pattern("j@acme.com") == 80
    assert validate_email_pattern("john.doe@acme.com") > validate_email_pattern("john@acme.com")


def test_validate_email_pattern_rejects_malformed() -> None:
    assert validate_email_pattern("not-an-email") == 0
    assert validate_email_pattern("a@b@acme.com") == 0
    assert validate_email_pattern("@acme.com") == 0
    assert validate_email_pattern("john doe@acme.com") < 50


def test_free_mail_is_not_business() -> None:
    assert is_valid_business_email("alice@gmail.com") is False
    assert is_valid_business_email("alice@Hotmail.com") is False
    assert is_valid_business_email("alice@acme.com") is True
    assert is_valid_business_email("broken") is False


def test_placeholder_emails() -> None:
    assert is_placeholder_email("info@acme.com") is True
    assert is_placeholder_email("no-reply@acme.com") is True
    assert is_placeholder_email("firstname.lastname@acme.com") is True
    assert is_placeholder_email("alice@example.com") is True
    assert is_placeholder_email("alice.walker@acme.com") is False


def test_generate_possible_emails_folds_accents() -> None:
    emails = generate_possible_emails("José Núñez", "Acme.com")
    assert emails == [
        "jose.nunez@acme.com",
        "jnunez@acme.com",
        "josen@acme.com",
        "jose@acme.com",
        "nunez@acme.com",
        "j.nunez@acme.com",
    ]


def test_generate_possible_emails_needs_full_name_and_domain() -> None:
    assert generate_possible_emails("Madonna", "acme.com") == []
    assert generate_possible_emails("Alice Walker", "") == []


def test_parse_email_details_skips_placeholders() -> None:
    text = "Reach alice.walker@acme.com or info@acme.com, or ops@acme.com."
    assert parse_email_details(text) == ["alice.walker@acme.com", "ops@acme.com"]
