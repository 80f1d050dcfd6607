import builtins
import io
import sys

import pytest

from remylang.errors import RemyRuntimeError
from remylang.interpreter import Interpreter, check_program, run_program
from remylang.parser import parse_program
from remylang.types import VOID, ArrayVal, TypeSpec


def run(source, **kwargs):
    return Interpreter(**kwargs).run(parse_program(source))


def value_of(expression, type_name):
    return run(f"func Main() -> {type_name} {{ return {expression}; }}")


def runtime_error(source, **kwargs):
    with pytest.raises(RemyRuntimeError) as excinfo:
        run(source, **kwargs)
    return excinfo.value.diagnostic


def output(capsys):
    return capsys.readouterr().out.splitlines()


def test_precedence():
    assert value_of('1 + 2 * 3', 'Int') == 7
    assert value_of('(1 + 2) * 3', 'Int') == 9
    assert value_of('2 ** 3 ** 2', 'Int') == 512


@pytest.mark.parametrize('op, expected', [
    ('+=', 15), ('-=', 5), ('*=', 50), ('/=', 2), ('%=', 0),
])
def test_compound_assignment(op, expected):
    assert run(f"func Main() -> Int {{ Int a = 10; a {op} 5; return a; }}") == expected


def test_integer_division_truncates_toward_zero():
    assert value_of('7 / 2', 'Int') == 3
    assert value_of('-7 / 2', 'Int') == -3
    assert value_of('-7 % 3', 'Int') == -1
    assert value_of('7 % -3', 'Int') == 1


def test_float_arithmetic():
    assert value_of('7.0 / 2', 'Float') == 3.5
    assert value_of('1 + 2.5', 'Float') == 3.5
    assert value_of('2 ** -1', 'Float') == 0.5
    assert value_of('2 ** 10', 'Int') == 1024
    assert value_of('-7.5 % 2', 'Float') == -1.5


def test_string_concatenation_and_comparison():
    assert value_of('"ab" + "cd"', 'String') == 'abcd'
    assert value_of('"apple" < "banana"', 'Bool') is True
    assert value_of("'a' < 'b'", 'Bool') is True
    assert value_of('1 == 1.0', 'Bool') is True
    assert value_of('[1, 2] == [1, 2]', 'Bool') is True


def test_operand_type_mismatches():
    assert runtime_error('print("a" + 1);').kind == 'TypeMismatch'
    assert runtime_error('print(1 < "a");').kind == 'TypeMismatch'
    assert runtime_error('print(1 == "1");').kind == 'TypeMismatch'
    assert runtime_error('print(-True);').kind == 'TypeMismatch'
    assert runtime_error('print(!1);').kind == 'TypeMismatch'
    assert runtime_error('print(1 && True);').kind == 'TypeMismatch'


def test_division_by_zero():
    assert runtime_error('print(1 / 0);').kind == 'DivisionByZero'
    assert runtime_error('print(1 % 0);').kind == 'DivisionByZero'
    assert runtime_error('print(1.0 / 0.0);').kind == 'DivisionByZero'
    assert runtime_error('print(0 ** -1);').kind == 'DivisionByZero'


def test_runtime_error_is_located_at_innermost_node():
    diag = runtime_error('Int x = 1;\nprint(x / 0);')
    assert (diag.line, diag.column) == (2, 9)
    assert str(diag) == '2:9: DivisionByZero: division by zero'


def test_logical_operators_short_circuit(capsys):
    run('''
    func Boom() -> Bool { print("boom"); return True; }
    print(False && Boom());
    print(True || Boom());
    print(True && Boom());
    ''')
    assert output(capsys) == ['False', 'True', 'boom', 'True']


def test_add_main_end_to_end(capsys):
    result = run('''
    func Add(Int a, Int b) -> Int { return a + b; }
    func Main() -> Int { Int a = 12; a = Add(a, 12); print(a); return 0; }
    ''')
    assert result == 0
    assert output(capsys) == ['24']


def test_without_main_runs_top_level_and_returns_void(capsys):
    assert run('print("top");') is VOID
    assert output(capsys) == ['top']


def test_functions_are_hoisted(capsys):
    run('print(Later(2));\nfunc Later(Int x) -> Int { return x * 10; }')
    assert output(capsys) == ['20']


def test_arity_and_argument_types_are_not_coerced():
    add = 'func Add(Int a, Int b) -> Int { return a + b; }\n'
    assert runtime_error(add + 'Add(1);').kind == 'ArityMismatch'
    assert runtime_error(add + 'Add(1, 2, 3);').kind == 'ArityMismatch'
    assert runtime_error(add + 'Add(1, "2");').kind == 'TypeMismatch'
    assert runtime_error(add + 'Add(1, 2.0);').kind == 'TypeMismatch'
    assert runtime_error('print(1, 2);').kind == 'ArityMismatch'
    assert runtime_error('Float f = 1;').kind == 'TypeMismatch'
    assert runtime_error('Char c = "a";').kind == 'TypeMismatch'


def test_arrays(capsys):
    result = run('''
    func Main() -> Int {
        Array<Int> xs = [1, 2, 3];
        xs[1] = 42;
        print(xs);
        return len(xs);
    }
    ''')
    assert result == 3
    assert output(capsys) == ['[1, 42, 3]']


def test_array_errors():
    xs = 'Array<Int> xs = [1, 2, 3];\n'
    assert runtime_error(xs + 'print(xs[5]);').kind == 'IndexOutOfBounds'
    assert runtime_error(xs + 'print(xs[-1]);').kind == 'IndexOutOfBounds'
    assert runtime_error(xs + 'xs[3] = 1;').kind == 'IndexOutOfBounds'
    assert runtime_error(xs + 'print(xs[1.0]);').kind == 'TypeMismatch'
    assert runtime_error(xs + 'xs[0] = "a";').kind == 'TypeMismatch'
    assert runtime_error('Int x = 1; print(x[0]);').kind == 'TypeMismatch'
    assert runtime_error('Array<Int> ys = [1, "a"];').kind == 'TypeMismatch'
    assert runtime_error('Array<Int> ys = [1.5];').kind == 'TypeMismatch'
    assert runtime_error('print(len(5));').kind == 'TypeMismatch'


def test_empty_array_adopts_declared_type():
    result = run('func Main() -> Array<String> { Array<String> s = []; return s; }')
    assert result == ArrayVal(TypeSpec.string(), [])
    nested = run('func Main() -> Array<Array<Int>> { return [[], [1]]; }')
    assert nested.elem_type == TypeSpec.array(TypeSpec.integer())
    assert nested.items[0].elem_type == TypeSpec.integer()


def test_arrays_are_copied_on_binding(capsys):
    run('''
    func Clear(Array<Int> xs) { xs[0] = 0; }
    Array<Int> a = [1, 2];
    Array<Int> b = a;
    b[0] = 9;
    Clear(a);
    print(a);
    print(b);
    ''')
    assert output(capsys) == ['[1, 2]', '[9, 2]']


def test_block_variable_not_visible_after_block():
    diag = runtime_error('if (True) { Int y = 1; }\nprint(y);')
    assert diag.kind == 'UndefinedVariable'
    assert diag.line == 2


def test_shadowing_and_duplicates(capsys):
    run('Int x = 1; { String x = "inner"; print(x); } print(x);')
    assert output(capsys) == ['inner', '1']
    assert runtime_error('Int x = 1; Int x = 2;').kind == 'DuplicateDeclaration'
    assert runtime_error('func F(Int a) { Int a = 2; } F(1);').kind == 'DuplicateDeclaration'
    assert runtime_error('func F() { } func F() { }').kind == 'DuplicateDeclaration'
    assert runtime_error('func print(Int x) { }').kind == 'DuplicateDeclaration'


def test_loop_iterations_get_fresh_scopes(capsys):
    run('Int i = 0; while (i < 3) { Int sq = i * i; print(sq); i += 1; }')
    assert output(capsys) == ['0', '1', '4']


def test_assignment_errors():
    assert runtime_error('x = 1;').kind == 'UndefinedVariable'
    assert runtime_error('x += 1;').kind == 'UndefinedVariable'
    assert runtime_error('Int x = 1; x = "s";').kind == 'TypeMismatch'
    assert runtime_error('print(y);').kind == 'UndefinedVariable'


def test_call_errors():
    assert runtime_error('Foo();').kind == 'UndefinedFunction'
    assert runtime_error('Int x = 1; x();').kind == 'NotCallable'
    assert runtime_error('func F() -> Int { } F();').kind == 'MissingReturn'
    assert runtime_error('func F() -> Int { return "s"; } F();').kind == 'TypeMismatch'
    assert runtime_error('func F() { return 1; } F();').kind == 'TypeMismatch'
    assert runtime_error('return 1;').kind == 'ReturnOutsideFunction'
    assert runtime_error('if (True) { return; }').kind == 'ReturnOutsideFunction'


def test_conditions_must_be_bool():
    assert runtime_error('if (1) { }').kind == 'TypeMismatch'
    assert runtime_error('while ("yes") { }').kind == 'TypeMismatch'


def test_stack_overflow():
    source = 'func F(Int n) -> Int { return F(n + 1); }\nF(0);'
    assert runtime_error(source).kind == 'StackOverflow'
    assert runtime_error(source, max_call_depth=10).kind == 'StackOverflow'


def test_recursion_within_limit():
    source = '''
    func Count(Int n) -> Int {
        if (n == 0) { return 0; }
        return 1 + Count(n - 1);
    }
    func Main() -> Int { return Count(90); }
    '''
    assert run(source) == 90


def test_nested_functions_capture_their_scope():
    source = '''
    func Main() -> Int {
        Int base = 10;
        func AddBase(Int x) -> Int { return x + base; }
        base = 20;
        return AddBase(5);
    }
    '''
    assert run(source) == 25


def test_return_unwinds_loops():
    source = '''
    func FirstOver(Array<Int> xs, Int limit) -> Int {
        Int i = 0;
        while (True) {
            if (xs[i] > limit) { return xs[i]; }
            i += 1;
        }
    }
    func Main() -> Int { return FirstOver([1, 5, 9, 12], 6); }
    '''
    assert run(source) == 9


def test_print_formats(capsys):
    run('''
    print(True);
    print(1.5);
    print(2.0);
    print('c');
    print([[1], [2, 3]]);
    print(print("inner"));
    ''')
    assert output(capsys) == ['True', '1.5', '2.0', 'c', '[[1], [2, 3]]', 'inner', 'void']


def test_print_to_output_stream():
    stream = io.StringIO()
    run('print("captured");', output=stream)
    assert stream.getvalue() == 'captured\n'


def test_input(monkeypatch, capsys):
    monkeypatch.setattr(builtins, 'input', lambda prompt='': 'Remy')
    run('String name = input(); print("Hi " + name);')
    assert output(capsys) == ['Hi Remy']


def test_input_at_end_of_stream(monkeypatch, capsys):
    def closed(prompt=''):
        raise EOFError
    monkeypatch.setattr(builtins, 'input', closed)
    run('print(len([input()]));\nprint(input() == "");')
    assert output(capsys) == ['1', 'True']


def test_debug_trace(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    run('''
    func Add(Int a, Int b) -> Int { return a + b; }
    func Main() -> Int { Int a = 12; if (a > 1) { a = Add(a, 12); } return 0; }
    ''', debug_level=3, debug_file=str(debug_file))
    trace = debug_file.read_text(encoding='utf-8')
    assert 'call Add(12, 12)' in trace
    assert 'return from Add: 24' in trace
    assert 'declare a: Int = 12' in trace
    assert 'assign a = 24' in trace
    assert '-> True' in trace


def test_no_debug_file_without_debug_level(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    run('Int a = 1;', debug_file=str(debug_file))
    assert not debug_file.exists()


def test_execution_stops_at_first_error(capsys):
    diag = runtime_error('print("before");\nprint(1 / 0);\nprint("after");')
    assert diag.kind == 'DivisionByZero'
    assert output(capsys) == ['before']


def test_same_interpreter_runs_a_program_twice(capsys):
    program = parse_program('Int calls = 0;\nfunc Main() -> Int { calls += 1; print(calls); return 7; }')
    interp = Interpreter()
    assert interp.run(program) == 7
    assert interp.run(program) == 7
    assert output(capsys) == ['1', '1']


def test_recursion_limit_is_restored():
    limit = sys.getrecursionlimit()
    run('func Main() -> Int { return 1; }', max_call_depth=1000)
    assert sys.getrecursionlimit() == limit
    runtime_error('func F(Int n) -> Int { return F(n + 1); }\nF(0);')
    assert sys.getrecursionlimit() == limit


def test_deeply_nested_program_runs_and_checks():
    nested = '(' * 300 + '1' + ')' * 300
    assert value_of(nested, 'Int') == 1
    assert check_program('Int x = ' + nested + ';') == []
    too_deep = '(' * 5000 + '1' + ')' * 5000
    assert [d.kind for d in check_program('Int x = ' + too_deep + ';')] == ['NestingTooDeep']


def test_run_program_and_check_program(capsys):
    assert run_program('func Main() -> Int { print("ok"); return 7; }') == 7
    assert output(capsys) == ['ok']
    assert check_program('Int x = 1;') == []
    diagnostics = check_program('Int x = ;')
    assert [d.kind for d in diagnostics] == ['UnexpectedToken']
    assert [d.kind for d in check_program('"open')] == ['UnterminatedString']
    # Runtime problems are not reported by a check.
    assert check_program('print(1 / 0);') == []
