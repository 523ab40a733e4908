import io

from pvs_strace.config  import Options
from pvs_strace.console import Console


def make_console(**kwargs):
    stream = io.StringIO()
    return Console(Options(**kwargs), stream), stream


def execve(pid, program, *args, result=' = 0'):
    argv = ', '.join('"{}"'.format(a) for a in args)
    return '{} execve("{}", [{}], 0x7ffd4e2c8f10 /* 24 vars */){}'.format(pid, program, argv, result)


# Имитация анализатора: пишет одну запись про исходник и одну общую,
# для исходников с "bad" в имени завершается с ошибкой.
FAKE_ANALYZER = """#!/bin/sh
while [ $# -gt 0 ]; do
    case "$1" in
        --source-file) src="$2"; shift 2;;
        --output-file) out="$2"; shift 2;;
        *) shift;;
    esac
done
case "$src" in
    *bad*) echo "cannot analyze $src"; exit 3;;
esac
printf '%s<#~>GA<#~>1<#~>%s<#~>error<#~>V501<#~>msg<#~>false<#~>1<#~>570<#~>ctx<#~><#~>\\n' Viva64-EM "$src" > "$out"
echo 'Viva64-EM<#~>GA<#~>3<#~>/usr/include/common.h<#~>error<#~>V1004<#~>msg<#~>false<#~>2<#~>476<#~>ctx<#~><#~>' >> "$out"
"""
