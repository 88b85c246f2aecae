import json

import pytest

from starman_dpkg.commands.starman_dpkg_cmd.__main__ import main


def _common_args(debian_dir):
    return [
        "--config",
        str(debian_dir / "starman-dpkg.yaml"),
        "--changelog",
        str(debian_dir / "changelog"),
    ]


def test_check_config(debian_dir, capsys) -> None:
    main(["check-config", *_common_args(debian_dir)])
    out = capsys.readouterr().out
    assert "is valid (web server: all)" in out


def test_show_variables(debian_dir, capsys) -> None:
    main(["show-variables", *_common_args(debian_dir), "--template", "postinst"])
    out = capsys.readouterr().out
    variables = json.loads(out)
    assert variables["package_name"] == "foo"
    assert variables["version"] == "1.2.3-1"
    assert variables["package_binary_depends"].endswith(", apache2, nginx")
    assert "a2enmod proxy proxy_http rewrite ldap ssl" in variables["webserver_restart"]


def test_generate(debian_dir, tmp_path) -> None:
    output_dir = tmp_path / "out"
    main(
        [
            "generate",
            *_common_args(debian_dir),
            "--output-dir",
            str(output_dir),
        ]
    )
    assert (output_dir / "control").is_file()
    assert (output_dir / "foo.init").is_file()
    assert "ln -s /srv/$PACKAGE/config/nginx/$PACKAGE.conf" in (
        output_dir / "foo.postinst"
    ).read_text(encoding="utf-8")


def test_overrides_without_changelog(tmp_path, debian_dir, capsys) -> None:
    main(
        [
            "show-variables",
            "--config",
            str(debian_dir / "starman-dpkg.yaml"),
            "--changelog",
            str(tmp_path / "does-not-exist"),
            "--package-name",
            "bar",
            "--version-override",
            "2.0",
            "--maintainer",
            "John Doe <john@example.org>",
        ]
    )
    variables = json.loads(capsys.readouterr().out)
    assert variables["package_name"] == "bar"
    assert variables["psgi_script"] == "script/bar.psgi"
    assert variables["author"] == "John Doe <john@example.org>"


def test_invalid_config_exits_with_error(debian_dir, capsys) -> None:
    (debian_dir / "starman-dpkg.yaml").write_text(
        "web_server: lighttpd\nstarman_port: 6000\n", encoding="utf-8"
    )
    with pytest.raises(SystemExit) as e_info:
        main(["check-config", *_common_args(debian_dir)])
    assert e_info.value.code == 1
    err = capsys.readouterr().err
    assert "error:" in err
    assert "web_server" in err


def test_non_ascii_digits_are_a_config_error(debian_dir, capsys) -> None:
    (debian_dir / "starman-dpkg.yaml").write_text(
        "web_server: nginx\nstarman_port: 6000\nuid: \"\u00b2\"\n", encoding="utf-8"
    )
    with pytest.raises(SystemExit) as e_info:
        main(["check-config", *_common_args(debian_dir)])
    assert e_info.value.code == 1
    err = capsys.readouterr().err
    assert "The key uid must be an integer" in err
    assert "STACK TRACE" not in err


def test_debug_mode_reraises(debian_dir) -> None:
    from starman_dpkg.config_parser.exceptions import MissingRequiredFieldError

    (debian_dir / "starman-dpkg.yaml").write_text(
        "web_server: nginx\n", encoding="utf-8"
    )
    with pytest.raises(MissingRequiredFieldError):
        main(["check-config", *_common_args(debian_dir), "--debug"])
