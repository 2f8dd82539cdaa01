"""Tests for package.json and tsconfig.json reading."""

from upkeep.manifest import read_manifest, read_tsconfig, strip_json_comments


class TestReadManifest:
    """Test package.json parsing."""

    def test_missing_manifest(self, tmp_path):
        assert read_manifest(tmp_path) is None

    def test_malformed_manifest(self, tmp_path, write_file):
        write_file("package.json", "{not json")
        assert read_manifest(tmp_path) is None

    def test_invalid_utf8_manifest(self, tmp_path):
        """Should treat an undecodable package.json as absent."""
        (tmp_path / "package.json").write_bytes(b'{"name": "\xff"}')
        assert read_manifest(tmp_path) is None

    def test_dependencies(self, tmp_path, write_package_json):
        """Should expose dependencies and devDependencies by alias."""
        write_package_json(
            dependencies={"react": "^18.2.0"},
            devDependencies={"react": "^17.0.0", "vitest": "^1.0.0"},
            packageManager="pnpm@9.0.0",
        )

        manifest = read_manifest(tmp_path)

        assert manifest.package_manager == "pnpm@9.0.0"
        assert manifest.dependency_count() == 3
        assert manifest.version_of("react") == "^18.2.0"
        assert manifest.version_of("vitest") == "^1.0.0"
        assert manifest.version_of("left-pad") is None


class TestReadTsConfig:
    """Test tsconfig.json parsing."""

    def test_comments_and_trailing_commas(self, tmp_path, write_file):
        """Should accept JSONC as written by tsc --init."""
        write_file(
            "tsconfig.json",
            """{
  // Visit https://aka.ms/tsconfig to read more
  "compilerOptions": {
    /* Type checking */
    "strict": true,
    "noImplicitReturns": true, // inline
  },
}""",
        )

        config = read_tsconfig(tmp_path)

        assert config.compiler_options.strict is True
        assert config.compiler_options.no_implicit_returns is True
        assert config.compiler_options.no_unused_locals is False

    def test_missing_compiler_options(self, tmp_path, write_file):
        write_file("tsconfig.json", '{"extends": "./base.json"}')

        config = read_tsconfig(tmp_path)

        assert config.extends == "./base.json"
        assert config.compiler_options.strict is False

    def test_invalid_tsconfig(self, tmp_path, write_file):
        write_file("tsconfig.json", "{]")
        assert read_tsconfig(tmp_path) is None

    def test_strip_keeps_urls_in_strings(self):
        assert strip_json_comments('{"url": "https://example.com"}') == '{"url": "https://example.com"}'

    def test_globs_in_strings(self, tmp_path, write_file):
        """Should keep comment markers that appear inside path globs."""
        write_file(
            "tsconfig.json",
            """{
  // project settings
  "compilerOptions": {
    "strict": true,
    "paths": {"@/*": ["./src/*"]}, /* aliases */
  },
  "include": ["src/**/*.ts"],
}
""",
        )

        config = read_tsconfig(tmp_path)

        assert config is not None
        assert config.compiler_options.strict is True

    def test_strip_keeps_escaped_quotes(self):
        content = '{"a": "say \\"/* hi */\\"", "b": [1,], // tail\n}'
        assert strip_json_comments(content) == '{"a": "say \\"/* hi */\\"", "b": [1] \n}'

    def test_invalid_utf8_tsconfig(self, tmp_path):
        (tmp_path / "tsconfig.json").write_bytes(b'{"compilerOptions": {"strict": true}} \xff')
        assert read_tsconfig(tmp_path) is None
