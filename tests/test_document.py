import pytest

from formula_sync.document import FormulaDocument
from formula_sync.errors import FormulaSyntaxError

FORMULA = '''class Hello < Formula
  desc "Says hello"
  homepage "https://github.com/mona/hello"
  url "https://github.com/mona/hello.git",
      tag:      "v1.0.0",
      revision: "0123456789abcdef0123456789abcdef01234567"
  version "v1.0.0"
  license "MIT"

  bottle do
    root_url "https://github.com/mona/hello/releases/download/v1.0.0"
    sha256 cellar: :any, arm64_sonoma: "aaaa"
  end

  depends_on "go" => :build

  def install
    system "go", "build", *std_go_args
    bin.install "hello"
  end

  test do
    assert_match "hello", shell_output("#{bin}/hello")
  end
end
'''


def test_finds_declarations_by_role():
    document = FormulaDocument.parse(FORMULA)
    assert document.text(document.version_call().span) == 'version "v1.0.0"'
    assert document.text(document.url_call().span) == (
        'url "https://github.com/mona/hello.git",\n'
        '      tag:      "v1.0.0",\n'
        '      revision: "0123456789abcdef0123456789abcdef01234567"'
    )
    bottle = document.text(document.bottle_block().span)
    assert bottle.startswith("bottle do\n")
    assert bottle.endswith("\n  end")
    assert document.anchor_call().name == "license"


def test_absent_roles_return_none():
    document = FormulaDocument.parse('class Hello < Formula\n  url "x"\nend\n')
    assert document.version_call() is None
    assert document.bottle_block() is None
    assert document.anchor_call().name == "url"


def test_anchor_prefers_license_over_url():
    source = 'class A < Formula\n  license "MIT"\n  url "x"\nend\n'
    assert FormulaDocument.parse(source).anchor_call().name == "license"


def test_first_declaration_in_document_order_wins():
    source = (
        "class A < Formula\n"
        '  url "first"\n'
        "  head do\n"
        '    url "second"\n'
        "  end\n"
        "end\n"
    )
    document = FormulaDocument.parse(source)
    assert document.text(document.url_call().span) == 'url "first"'


def test_nested_declarations_are_found():
    source = (
        "class A < Formula\n"
        "  on_macos do\n"
        '    url "nested", using: :git\n'
        "  end\n"
        "end\n"
    )
    document = FormulaDocument.parse(source)
    assert document.text(document.url_call().span) == 'url "nested", using: :git'
    assert document.find_block("on_macos") is not None


def test_call_span_excludes_trailing_comment():
    source = 'version "1.0" # pinned\n'
    document = FormulaDocument.parse(source)
    assert document.text(document.version_call().span) == 'version "1.0"'


def test_parenthesized_call_span():
    source = 'version("1.0")\nlicense "MIT"\n'
    document = FormulaDocument.parse(source)
    assert document.text(document.version_call().span) == 'version("1.0")'


def test_block_receiver_is_not_a_declaration():
    source = "resources.each do |r|\n  r.stage\nend\n"
    document = FormulaDocument.parse(source)
    assert document.find_block("resources") is None
    assert document.find_block("each") is None


def test_brace_block_is_a_block_declaration():
    source = 'bottle { sha256 "x" }\n'
    document = FormulaDocument.parse(source)
    assert document.text(document.bottle_block().span) == 'bottle { sha256 "x" }'


def test_modifier_conditional_closes_call():
    source = 'url "a" if OS.mac?\nversion "1"\n'
    document = FormulaDocument.parse(source)
    assert document.text(document.url_call().span) == 'url "a"'


def test_bare_call_without_arguments_is_not_a_version_declaration():
    source = "def version\n  version\nend\n"
    assert FormulaDocument.parse(source).version_call() is None


def test_line_indent():
    document = FormulaDocument.parse(FORMULA)
    assert document.line_indent(document.bottle_block().span.start) == "  "


def test_unbalanced_source_raises():
    with pytest.raises(FormulaSyntaxError):
        FormulaDocument.parse("class A < Formula\n  bottle do\nend\n")
    with pytest.raises(FormulaSyntaxError):
        FormulaDocument.parse("end\n")
