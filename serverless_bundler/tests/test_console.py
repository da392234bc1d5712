from serverless_bundler.core import console


def test_plain_output_when_not_a_tty(capsys):
    console.step("Bundling serverless function: site")
    console.success("Serverless: 1 file bundled to ./functions/site.")
    console.error("Error: boom")

    captured = capsys.readouterr()
    assert captured.out == (
        "-> Bundling serverless function: site\n"
        "Serverless: 1 file bundled to ./functions/site.\n"
    )
    assert captured.err == "Error: boom\n"
    assert "\033[" not in captured.out + captured.err


def test_only_cli_helpers_are_exposed():
    assert not hasattr(console, "info")
    assert not hasattr(console, "warning")
