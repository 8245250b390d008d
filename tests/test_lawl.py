import pytest

from lawl import Lawl


def test_should_construct():
    Lawl()


def test_should_not_mutate_html_without_lua():
    lawl = Lawl()
    html = """
            <!doctype html>
            <html>
              <head>
                <title>This is the title of the webpage!</title>
              </head>
              <body>
                <p>This is an example paragraph. Anything in the <strong>body</strong> tag will appear on the page, just like this <strong>p</strong> tag and its contents.</p>
              </body>
            </html>
        """
    assert lawl.render(html) == html


@pytest.mark.parametrize("html", [
    "",
    "plain text, no markup at all",
    "<p class=x data-y='1'>&amp; &lt;tag&gt; &#169;</p>",
    "<!-- a comment with <lua code='data = \"x\"'>y</lua> inside -->",
    "<script>var s = \"<lua code='data = 1'>x</lua>\";</script>",
    "<div\r\n  id=\"crlf\">\r\n café ☃ </div>\r\n",
    "<p>unclosed <b>tags <i>everywhere",
    "<br/><img src=a.png alt=\"a > b\"><input disabled>",
    "<![CDATA[ raw ]]><?php echo 1; ?>",
    "a < b and c > d",
])
def test_identity_without_reserved_tag(html):
    assert Lawl().render(html) == html


def test_should_generate_correct_result_from_basic_lua_expression():
    lawl = Lawl()
    html = """<lua code='data = "my little pony"'>replace me!</lua>"""
    assert lawl.render(html) == "my little pony"


def test_tag_name_is_case_insensitive():
    lawl = Lawl()
    assert lawl.render("""<Lua code='data = "my little pony"'>replace me!</Lua>""") == "my little pony"
    assert lawl.render("""<LUA CODE='data = "x"'>y</lua>""") == "x"


def test_only_the_tag_pair_is_replaced():
    lawl = Lawl()
    html = """<ul>\n  <li><lua code='data = string.upper(data)'>one</lua></li>\n  <li>two</li>\n</ul>"""
    assert lawl.render(html) == """<ul>\n  <li>ONE</li>\n  <li>two</li>\n</ul>"""


def test_missing_code_passes_content_through():
    assert Lawl().render("<p><lua>keep <b>me</b></lua></p>") == "<p>keep <b>me</b></p>"


def test_slot_content_is_the_literal_source_text():
    lawl = Lawl()
    # Entities and odd spacing inside the slot are not normalized.
    html = "<lua code='data = \"[\" .. data .. \"]\"'>&amp; <B  CLASS=x>ü</B ></lua>"
    assert lawl.render(html) == "[&amp; <B  CLASS=x>ü</B >]"


def test_output_is_inserted_as_raw_markup():
    html = """<lua code='data = "<em>&amp;</em>"'></lua>"""
    assert Lawl().render(html) == "<em>&amp;</em>"


def test_code_attribute_is_read_as_written():
    # Character references in `code` reach Lua untouched.
    html = """<lua code="data = 'a &amp; b &lt;'">x</lua>"""
    assert Lawl().render(html) == "a &amp; b &lt;"


def test_code_attribute_first_occurrence_wins():
    html = """<lua id=x code='data = "first"' CODE='data = "second"'>x</lua>"""
    assert Lawl().render(html) == "first"


def test_code_attribute_unquoted_and_with_gt_inside_quotes():
    assert Lawl().render("<lua code=data=data..data>ab</lua>") == "abab"
    assert Lawl().render("""<lua code='data = tostring(2 > 1)'>x</lua>""") == "true"


def test_multiple_slots_in_one_document():
    lawl = Lawl()
    html = """<h1><lua code='data = "A"'>a</lua></h1><p><lua code='data = data .. data'>b</lua></p>"""
    assert lawl.render(html) == "<h1>A</h1><p>bb</p>"


def test_nested_slots_resolve_inner_first():
    lawl = Lawl()
    html = """<lua code='data = data .. "!"'>a<lua code='data = "B"'>b</lua>c</lua>"""
    assert lawl.render(html) == "aBc!"


def test_outer_slot_sees_inner_result():
    lawl = Lawl()
    html = (
        """<lua code='data = "outer saw: " .. data'>"""
        """<lua code='data = string.rep(data, 2)'>x</lua>"""
        """</lua>"""
    )
    assert lawl.render(html) == "outer saw: xx"


def test_self_closing_spelling_still_opens_a_slot():
    assert Lawl().render("""<lua code='data = "x"'/>tail</lua>!""") == "x!"


def test_stray_close_tag_passes_through():
    assert Lawl().render("a</lua>b") == "a</lua>b"


def test_unclosed_slot_is_dropped_without_running():
    assert Lawl().render("a<lua code='data = string.upper(data)'>bc") == "a"
    assert Lawl().render("a<lua code='error(\"never\")'>bc") == "a"


def test_unclosed_outer_slot_drops_closed_inner_slot():
    html = "a<lua code='error(\"never\")'>b<lua code='data = \"X\"'>c</lua>d"
    assert Lawl().render(html) == "a"


@pytest.mark.parametrize("element", [
    "script", "style", "title", "textarea", "xmp", "iframe", "noembed", "noframes",
])
def test_lua_inside_text_only_elements_is_left_alone(element):
    html = f"<p><{element}><lua code='data = \"X\"'>y</lua></{element}></p>"
    assert Lawl().render(html) == html


def test_slots_resume_after_text_only_element():
    html = "<title><lua>t</lua></title><lua code='data = \"X\"'>y</lua>"
    assert Lawl().render(html) == "<title><lua>t</lua></title>X"


def test_lua_after_plaintext_is_left_alone():
    html = "<plaintext><lua code='data = \"X\"'>y</lua></plaintext>"
    assert Lawl().render(html) == html


def test_data_assigned_a_number_is_converted_with_tostring():
    assert Lawl().render("<lua code='data = 40 + 2'>x</lua>") == "42"
    assert Lawl().render("<lua code='data = 1.5'>x</lua>") == "1.5"


def test_bytes_template_is_decoded_as_utf8():
    html = "<lua code='data = data .. \"!\"'>café</lua>".encode("utf-8")
    assert Lawl().render(html) == "café!"


def test_render_file(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<h1><lua code='data = title'></lua></h1>", encoding="utf-8")
    lawl = Lawl()
    lawl.insert("title", "Home")
    assert lawl.render_file(path) == "<h1>Home</h1>"


def test_script_globals_do_not_leak_between_renders():
    lawl = Lawl()
    assert lawl.render("<lua code='leak = \"x\"'>a</lua>") == "a"
    assert lawl.render("<lua code='data = tostring(leak)'></lua>") == "nil"


def test_script_globals_persist_across_slots_within_one_render():
    html = "<lua code='count = 1'>a</lua><lua code='data = data .. count'>b</lua>"
    assert Lawl().render(html) == "ab1"
