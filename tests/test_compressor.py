"""Tests for the compressor module."""

import dataclasses

import pytest

from markup_compressor import (
    CompressionResult,
    HtmlCompressor,
    HtmlOptions,
    MinificationError,
    PlaceholderError,
    PreservedBlock,
    XmlCompressor,
    XmlOptions,
    compress,
    compress_file,
    compress_with_stats,
    detect_dialect,
)


ALL_SHELL_FLAGS = HtmlOptions(
    remove_comments=True,
    remove_multi_spaces=True,
    remove_intertag_spaces=True,
    remove_quotes=True,
)


class TestCompress:
    def test_returns_string(self):
        assert isinstance(compress("<p>Hello</p>"), str)

    def test_default_flags_scenario(self):
        html = "<html>\n\n  <body>   <p>Hi   there</p>  \n </body></html>"
        assert compress(html) == "<html> <body> <p>Hi there</p> </body></html>"

    def test_output_is_trimmed(self):
        assert compress("  \n <p>x</p> \n\n") == "<p>x</p>"

    def test_single_newline_kept(self):
        assert compress("<p>a</p>\n<p>b</p>") == "<p>a</p>\n<p>b</p>"

    def test_empty_string(self):
        assert compress("") == ""

    def test_none_passthrough(self):
        assert HtmlCompressor().compress(None) is None

    def test_disabled_returns_input_unchanged(self):
        html = "  <p>  unclosed <pre> <!-- x -->\n\n  "
        assert compress(html, options=HtmlOptions(enabled=False)) == html

    def test_per_call_options_override_instance(self):
        compressor = HtmlCompressor(HtmlOptions(remove_intertag_spaces=True))
        html = "<ul>\n  <li>a</li>\n</ul>"
        assert compressor.compress(html) == "<ul><li>a</li></ul>"
        assert compressor.compress(html, HtmlOptions()) == "<ul> <li>a</li>\n</ul>"

    def test_unknown_dialect_raises(self):
        with pytest.raises(ValueError, match="Dialect must be one of"):
            compress("<p>x</p>", dialect="json")

    def test_mismatched_options_raise(self):
        with pytest.raises(ValueError, match="XmlOptions"):
            compress("<a/>", dialect="xml", options=HtmlOptions())
        with pytest.raises(ValueError, match="HtmlOptions"):
            compress("<a/>", dialect="html", options=XmlOptions())

    def test_dialect_name_case_insensitive(self):
        assert compress("<a>  </a>", dialect="XML") == "<a></a>"

    def test_options_are_immutable(self):
        options = HtmlOptions()
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.remove_comments = False  # type: ignore[misc]


class TestProtectedBlocks:
    def test_pre_preserved(self):
        html = "<div>  a  </div>\n<pre>  keep\n   this  </pre>"
        assert compress(html) == "<div> a </div>\n<pre>  keep\n   this  </pre>"

    def test_pre_with_attributes(self):
        block = '<PRE class="code">\n  x  =  1\n</PRE>'
        assert block in compress(f"<p>  a  </p>  {block}")

    def test_textarea_preserved(self):
        block = "<textarea name=\"c\">\n  line one\n\n   line two\n</textarea>"
        assert block in compress(f"<form>\n\n  {block}\n\n</form>", options=ALL_SHELL_FLAGS)

    def test_script_preserved_without_js_compression(self):
        block = "<script>\n  var  a =   1;\n  // comment\n</script>"
        assert block in compress(f"<head>   {block}   </head>", options=ALL_SHELL_FLAGS)

    def test_style_preserved_without_css_compression(self):
        block = "<style>\n  body  {  color: red;  }\n</style>"
        assert block in compress(f"<head>   {block}   </head>", options=ALL_SHELL_FLAGS)

    def test_template_region_preserved(self):
        html = "<% if (x) {   %>  <p>a</p>  <% } %>"
        assert compress(html) == "<% if (x) {   %> <p>a</p> <% } %>"

    def test_template_expression_is_not_protected(self):
        assert compress("<p><%=   name   %></p>") == "<p><%= name %></p>"

    def test_prefix_tag_names_are_not_blocks(self):
        # <preview> is not <pre>
        assert compress("<preview>  a  </preview>") == "<preview> a </preview>"

    def test_nested_literal_escaped_script_in_pre(self):
        html = "<pre>&lt;script&gt;x&lt;/script&gt;</pre>"
        assert compress(html, options=ALL_SHELL_FLAGS) == html

    def test_nested_literal_raw_script_in_pre(self):
        html = "<p>  a  </p>\n\n<pre><script>  var   x;  </script>\n  </pre>"
        result = compress(html, options=ALL_SHELL_FLAGS)
        assert "<pre><script>  var   x;  </script>\n  </pre>" in result

    def test_raw_script_in_pre_not_minified(self):
        calls = []

        def minify(kind, body):
            calls.append(kind)
            return body.strip()

        html = "<pre><script>  var   x;  </script></pre>"
        options = HtmlOptions(compress_js=True)
        assert compress(html, options=options, minifier=minify) == html
        assert calls == []

    def test_pre_inside_script_string(self):
        html = '<script>var s = "<pre>  x  </pre>";</script>'
        assert compress(html, options=ALL_SHELL_FLAGS) == html

    def test_script_inside_textarea(self):
        html = "<textarea>  <script> a  b </script>  </textarea>"
        assert compress(html, options=ALL_SHELL_FLAGS) == html

    def test_style_inside_template_region(self):
        html = '<% out.print("<style>  a  </style>"); %>'
        assert compress(html) == html

    def test_non_greedy_blocks(self):
        html = "<pre> a </pre>   <p>  x  </p>   <pre> b </pre>"
        assert compress(html) == "<pre> a </pre> <p> x </p> <pre> b </pre>"

    def test_multiple_blocks_keep_their_order(self):
        html = "".join(f"<pre>{i}  {i}</pre>\n\n" for i in range(12))
        result = compress(html)
        for i in range(12):
            assert f"<pre>{i}  {i}</pre>" in result
        assert result.index("<pre>2  2</pre>") < result.index("<pre>11  11</pre>")

    def test_literal_placeholder_out_of_range_raises(self):
        with pytest.raises(PlaceholderError):
            compress("<p>%%%COMPRESS~PRE~7%%%</p>")

    def test_token_like_text_in_pre_kept_verbatim(self):
        html = "<pre>%%%COMPRESS~TEXTAREA~0%%%</pre><textarea>x</textarea>"
        result = compress_with_stats(html)
        assert result.text == html
        assert result.restored == result.extracted

    def test_literal_placeholder_colliding_with_block_raises(self):
        with pytest.raises(PlaceholderError, match="more than once"):
            compress("<p>%%%COMPRESS~PRE~0%%%</p><pre> a </pre>")


class TestComments:
    def test_html_comment_removed(self):
        assert compress("<!-- note --><p>a</p>") == "<p>a</p>"

    def test_multiline_comment_removed(self):
        assert compress("<p>a</p><!--\n  multi\n  line\n--><p>b</p>") == "<p>a</p><p>b</p>"

    def test_comments_kept_when_disabled(self):
        html = "<!-- note --><p>a</p>"
        assert compress(html, options=HtmlOptions(remove_comments=False)) == html

    def test_conditional_comment_kept(self):
        html = '<!--[if lt IE 9]><script src="shiv.js"></script><![endif]--><p>a</p>'
        assert compress(html) == html

    def test_comment_removal_is_non_greedy(self):
        assert compress("<!-- a --><p>keep</p><!-- b -->") == "<p>keep</p>"

    def test_jsp_comment_removed_by_default(self):
        assert compress("<%-- hidden --%><p>a</p>") == "<p>a</p>"

    def test_jsp_comment_kept_when_disabled(self):
        html = "<%-- hidden --%><p>a</p>"
        assert compress(html, options=HtmlOptions(remove_jsp_comments=False)) == html

    def test_struts_form_comment_kept(self):
        html = '<!-- <html:form action="/save"> --><p>a</p><!-- other -->'
        options = HtmlOptions(preserve_struts_comments=True)
        assert compress(html, options=options) == '<!-- <html:form action="/save"> --><p>a</p>'

    def test_block_inside_removed_comment_is_dropped(self):
        result = compress_with_stats("<!-- <script>old()</script> --><p>a</p>")
        assert result.text == "<p>a</p>"
        assert result.extracted["script"] == 1
        assert result.restored["script"] == 0


class TestWhitespace:
    def test_multi_spaces_collapsed(self):
        assert compress("<p>a   b\t\tc\n\n d</p>") == "<p>a b c d</p>"

    def test_multi_spaces_kept_when_disabled(self):
        html = "<p>a   b</p>"
        assert compress(html, options=HtmlOptions(remove_multi_spaces=False)) == html

    def test_intertag_spaces_kept_by_default(self):
        assert compress("<b>x</b> <i>y</i>") == "<b>x</b> <i>y</i>"

    def test_intertag_spaces_removed(self):
        html = "<ul>\n  <li>a</li>\n  <li>b</li>\n</ul>"
        options = HtmlOptions(remove_intertag_spaces=True)
        assert compress(html, options=options) == "<ul><li>a</li><li>b</li></ul>"

    def test_intertag_removal_keeps_text_spaces(self):
        options = HtmlOptions(remove_intertag_spaces=True)
        assert compress("<p>a b</p> <p>c</p>", options=options) == "<p>a b</p><p>c</p>"


class TestQuoteRemoval:
    options = HtmlOptions(remove_quotes=True)

    def test_simple_values_unquoted(self):
        html = "<div class=\"nav\" id='top'>x</div>"
        assert compress(html, options=self.options) == "<div class=nav id=top>x</div>"

    def test_spaces_around_equals_dropped(self):
        assert compress('<p class = "a">x</p>', options=self.options) == "<p class=a>x</p>"

    def test_unsafe_values_keep_quotes(self):
        html = '<a href="/path" title="two words" data-x="">x</a>'
        assert compress(html, options=self.options) == html

    def test_self_closing_value_keeps_quotes(self):
        html = '<br class="x"/>'
        assert compress(html, options=self.options) == html

    def test_quotes_inside_other_value_untouched(self):
        html = "<a title='x=\"y\" z'>x</a>"
        assert compress(html, options=self.options) == html

    def test_text_outside_tags_untouched(self):
        html = '<p>a="b" c</p>'
        assert compress(html, options=self.options) == html

    def test_quotes_kept_by_default(self):
        html = '<div class="nav">x</div>'
        assert compress(html) == html


class TestScriptStyleCompression:
    def test_minifier_receives_inner_content(self):
        calls = []

        def minify(kind, body):
            calls.append((kind, body))
            return "MIN"

        html = '<script type="text/javascript">\n var a;\n</script><style media="all"> p {} </style>'
        options = HtmlOptions(compress_js=True, compress_css=True)
        result = compress(html, options=options, minifier=minify)

        assert calls == [("script", "\n var a;\n"), ("style", " p {} ")]
        assert result == '<script type="text/javascript">MIN</script><style media="all">MIN</style>'

    def test_only_enabled_kind_is_minified(self):
        calls = []

        def minify(kind, body):
            calls.append(kind)
            return body.strip()

        html = "<script> a </script><style> b </style>"
        compress(html, options=HtmlOptions(compress_css=True), minifier=minify)
        assert calls == ["style"]

    @pytest.mark.parametrize("block", [
        '<script src="app.js"></script>',
        "<script>   \n  </script>",
        "<style></style>",
    ])
    def test_empty_blocks_skip_minifier(self, block):
        def minify(kind, body):
            raise AssertionError("minifier must not be called")

        options = HtmlOptions(compress_js=True, compress_css=True)
        assert compress(block, options=options, minifier=minify) == block

    def test_minifier_failure_aborts(self):
        def minify(kind, body):
            raise ValueError("syntax error")

        options = HtmlOptions(compress_js=True)
        with pytest.raises(MinificationError, match="script") as exc_info:
            compress("<p>a</p><script>var = ;</script>", options=options, minifier=minify)
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.kind == "script"

    def test_default_js_minifier(self):
        html = "<p>a</p>\n<script>\n  var  a = 1;\n  var b = 2;\n</script>"
        result = compress(html, options=HtmlOptions(compress_js=True))
        assert "var a=1;var b=2;" in result
        assert result.startswith("<p>a</p>\n<script>var")

    def test_default_css_minifier(self):
        html = "<style>\n  body {\n    color: red;\n  }\n</style>"
        result = compress(html, options=HtmlOptions(compress_css=True))
        assert "body{color:red" in result
        assert "\n" not in result

    def test_default_js_minifier_division_after_increment(self):
        html = "<script>var x = i++ / 2;</script>"
        result = compress(html, options=HtmlOptions(compress_js=True))
        assert result == "<script>var x=i++/2;</script>"

    def test_minified_script_keeps_pre_placeholder_content(self):
        html = '<script>\n  var s = "<pre>  x  </pre>";\n</script>'
        result = compress(html, options=HtmlOptions(compress_js=True))
        assert '"<pre>  x  </pre>"' in result


class TestXml:
    def test_comments_and_intertag_spaces_removed(self):
        xml = (
            '<?xml version="1.0"?>\n<!-- c -->\n<root>\n  <a>1</a>\n'
            "  <b><![CDATA[  x   y  ]]></b>\n</root>"
        )
        assert compress(xml, dialect="xml") == (
            '<?xml version="1.0"?><root><a>1</a><b><![CDATA[  x   y  ]]></b></root>'
        )

    def test_text_spaces_not_collapsed(self):
        assert compress("<a>x   y</a>", dialect="xml") == "<a>x   y</a>"

    def test_bracket_comment_removed(self):
        assert compress("<a/><!--[x]-->", dialect="xml") == "<a/>"

    def test_options(self):
        xml = "<r>\n  <!-- c -->\n  <a/>\n</r>"
        options = XmlOptions(remove_comments=False, remove_intertag_spaces=False)
        assert XmlCompressor(options).compress(xml) == xml

    def test_cdata_containing_tags_untouched(self):
        cdata = "<![CDATA[<!-- not a comment -->  <y>  </y>]]>"
        xml = f"<r>\n  <x/>{cdata}</r>"
        assert compress(xml, dialect="xml") == f"<r><x/>{cdata}</r>"

    def test_disabled(self):
        xml = "<r>\n  <a/>\n</r>"
        assert compress(xml, dialect="xml", options=XmlOptions(enabled=False)) == xml


class TestProperties:
    documents = [
        "<html>\n\n  <body>   <p>Hi   there</p>  \n </body></html>",
        "<!-- c -->\n<div  class=\"a\">\n  <pre>  x\n  y</pre>\n\n  <textarea> t  </textarea></div>",
        "<head><style> p  { } </style>\n  <script> var  a; </script></head>\n  <% x   %>",
        "<ul>\n  <li>a</li>  <!--[if IE]>x<![endif]-->\n</ul>",
    ]

    @pytest.mark.parametrize("html", documents)
    def test_idempotent(self, html):
        once = compress(html, options=ALL_SHELL_FLAGS)
        assert compress(once, options=ALL_SHELL_FLAGS) == once

    @pytest.mark.parametrize("html", documents)
    def test_every_extracted_block_is_restored(self, html):
        result = compress_with_stats(html, options=ALL_SHELL_FLAGS)
        assert result.extracted == result.restored
        assert "%%%COMPRESS~" not in result.text

    def test_protection_invariant(self):
        blocks = [
            "<pre>\n\t a  <!-- c -->  b\n</pre>",
            '<textarea name="x">  "q"  </textarea>',
            "<script>\n  if (a  &&  b) {  }\n</script>",
            "<style>\n  a  >  b  {  }\n</style>",
        ]
        html = "\n\n  <div  id=\"x\">  ".join(blocks)
        result = compress(html, options=ALL_SHELL_FLAGS)
        for block in blocks:
            assert block in result


class TestCompressionStats:
    html = "<pre>a</pre>   <pre>b</pre>   <script>c</script>"

    def test_result_text_matches_compress(self):
        assert compress_with_stats(self.html).text == compress(self.html)

    def test_lengths_and_ratio(self):
        result = compress_with_stats(self.html)
        assert result.original_length == len(self.html)
        assert result.compressed_length == len(result.text)
        assert result.ratio == pytest.approx(result.compressed_length / result.original_length)
        assert result.savings_pct == pytest.approx((1 - result.ratio) * 100)

    def test_block_counts(self):
        result = compress_with_stats(self.html)
        assert result.extracted == {"pre": 2, "script": 1, "style": 0, "template": 0, "textarea": 0}
        assert result.restored == result.extracted

    def test_preserved_blocks(self):
        result = compress_with_stats(self.html)
        assert PreservedBlock(kind="pre", index=1, text="<pre>b</pre>") in result.preserved_blocks
        assert PreservedBlock(kind="script", index=0, text="<script>c</script>") in result.preserved_blocks

    def test_str_returns_text(self):
        result = compress_with_stats(self.html)
        assert str(result) == result.text
        assert isinstance(result, CompressionResult)

    def test_dialect_recorded(self):
        assert compress_with_stats("<a> </a>", dialect="xml").dialect == "xml"

    def test_empty_input(self):
        result = compress_with_stats("")
        assert result.text == ""
        assert result.ratio == 1.0
        assert result.preserved_blocks == ()


class TestCompressFile:
    def test_html_file(self, tmp_path):
        path = tmp_path / "page.html"
        path.write_text("<p>  a  </p>\n\n<pre>  b  </pre>", encoding="utf-8")
        assert compress_file(path) == "<p> a </p> <pre>  b  </pre>"

    def test_xml_detected_from_extension(self, tmp_path):
        path = tmp_path / "feed.XML"
        path.write_text("<feed>\n  <entry/>\n</feed>", encoding="utf-8")
        assert compress_file(path) == "<feed><entry/></feed>"

    def test_explicit_dialect_wins(self, tmp_path):
        path = tmp_path / "feed.xml"
        path.write_text("<feed>\n  <entry/>\n</feed>", encoding="utf-8")
        assert compress_file(path, dialect="html") == "<feed> <entry/>\n</feed>"

    def test_encoding(self, tmp_path):
        path = tmp_path / "page.html"
        path.write_bytes("<p>café   ok</p>".encode("latin-1"))
        assert compress_file(path, encoding="latin-1") == "<p>café ok</p>"

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            compress_file(tmp_path / "missing.html")

    @pytest.mark.parametrize("name,expected", [
        ("a.xml", "xml"),
        ("a.html", "html"),
        ("a.jsp", "html"),
        ("noext", "html"),
    ])
    def test_detect_dialect(self, name, expected):
        assert detect_dialect(name) == expected
