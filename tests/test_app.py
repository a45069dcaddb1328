from streamlit.testing.v1 import AppTest

SAMPLE = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.eyJzdWIiOiJ0ZXN0In0.signature"
KEY = "01" * 32

def make_app():
    at = AppTest.from_file("../streamlit_app.py", default_timeout=30)
    at.run()
    assert not at.exception
    return at

def open_aes(at):
    at.radio(key="ui.page").set_value("aes").run()
    return at

def codes(at):
    return [c.value for c in at.code]

def test_starts_in_chinese():
    at = make_app()
    assert at.title[0].value == "做甚麼都有如神助"

def test_jwt_page_decodes_token():
    at = make_app()
    at.text_area(key="jwt.token").input(SAMPLE).run()
    assert not at.exception
    assert any('"alg": "HS256"' in c for c in codes(at))

def test_jwt_page_resigns_token():
    at = make_app()
    at.text_area(key="jwt.token").input(SAMPLE)
    at.text_input(key="jwt.secret").input("k" * 32).run()
    at.button(key="jwt.sign").click().run()
    assert not at.exception
    signed = [c for c in codes(at) if c.count(".") == 2 and c.startswith("eyJ")]
    assert signed and signed[0] != SAMPLE

def test_aes_page_encrypts():
    at = open_aes(make_app())
    at.text_input(key="aes.key").input(KEY)
    at.text_area(key="aes.plaintext").input("hello")
    at.button(key="aes.encrypt").click().run()
    assert not at.exception
    assert any(len(c) == 42 for c in codes(at))

def test_aes_page_reports_short_key():
    at = open_aes(make_app())
    at.text_input(key="aes.key").input("01" * 31)
    at.text_area(key="aes.plaintext").input("hello")
    at.button(key="aes.encrypt").click().run()
    assert any("32 bytes" in e.value for e in at.error)

def test_failed_decrypt_keeps_encrypt_output():
    at = open_aes(make_app())
    at.text_input(key="aes.key").input(KEY)
    at.text_area(key="aes.plaintext").input("hello")
    at.button(key="aes.encrypt").click().run()
    at.text_area(key="aes.ciphertext").input("00" * 21)
    at.button(key="aes.decrypt").click().run()
    assert any(len(c) == 42 for c in codes(at))
    assert any("authentication failed" in e.value for e in at.error)

def test_leaving_a_page_discards_its_state():
    at = open_aes(make_app())
    at.text_input(key="aes.key").input(KEY)
    at.text_area(key="aes.plaintext").input("hello")
    at.button(key="aes.encrypt").click().run()
    at.radio(key="ui.page").set_value("jwt").run()
    open_aes(at)
    assert at.text_input(key="aes.key").value == ""
    assert not any(len(c) == 42 for c in codes(at))
