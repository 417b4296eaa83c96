"""CLI tests: click's CliRunner against the real commands."""

from click.testing import CliRunner

from authkeep.auth.encoding import b64u_decode
from authkeep.cli.main import main

FX_SALT = "f05e8961-d6ad-4086-9e78-a6de065e5453"
FX_HELLO_01 = "O-O5vW4_IYE27NeR7l0zQK5Fw_tadY-lMu2sB6jIB9mUDulWrBAEhrwQUzjOCUqdip-ijZDnLwTcHnk-c1Y6Kw"


def test_gen_key():
    runner = CliRunner()
    result = runner.invoke(main, ["gen-key"])
    assert result.exit_code == 0
    key = result.output.strip()
    assert len(key) == 86
    assert len(b64u_decode(key)) == 64


def test_gen_key_is_random():
    runner = CliRunner()
    first = runner.invoke(main, ["gen-key"]).output
    second = runner.invoke(main, ["gen-key"]).output
    assert first != second


def test_hash_pwd_scheme_01():
    runner = CliRunner()
    result = runner.invoke(main, ["hash-pwd", "hello world", "--salt", FX_SALT, "--scheme", "01"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == f"#01#{FX_HELLO_01}"


def test_hash_pwd_default_scheme():
    runner = CliRunner()
    result = runner.invoke(main, ["hash-pwd", "hello world", "--salt", FX_SALT])
    assert result.exit_code == 0, result.output
    assert result.output.strip().startswith(
        "#02#$argon2id$v=19$m=19456,t=2,p=1$8F6JYdatQIaeeKbeBl5UUw$"
    )


def test_hash_pwd_unknown_scheme():
    runner = CliRunner()
    result = runner.invoke(main, ["hash-pwd", "x", "--salt", FX_SALT, "--scheme", "99"])
    assert result.exit_code == 2


def test_hash_pwd_bad_salt():
    runner = CliRunner()
    result = runner.invoke(main, ["hash-pwd", "x", "--salt", "not-a-uuid"])
    assert result.exit_code == 2


def test_hash_pwd_without_key():
    runner = CliRunner()
    result = runner.invoke(
        main, ["hash-pwd", "x", "--salt", FX_SALT], env={"AUTHKEEP_PWD_KEY": ""}
    )
    assert result.exit_code == 1
    assert "AUTHKEEP_PWD_KEY" in result.output


def test_check_config_ok():
    runner = CliRunner()
    result = runner.invoke(main, ["check-config"])
    assert result.exit_code == 0
    assert "Config OK" in result.output


def test_check_config_invalid():
    runner = CliRunner()
    result = runner.invoke(main, ["check-config"], env={"AUTHKEEP_TOKEN_KEY": "c2hvcnQ"})
    assert result.exit_code == 1
    assert "token_key" in result.output
